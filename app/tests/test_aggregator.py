"""Aggregator behaviour: merging, failure tolerance, deadlines and tracing."""

from __future__ import annotations

import asyncio
from collections import Counter

import httpx
import pytest

from app.core.config import Settings
from app.services.ipdata import (
    AssigneeValidationError,
    FetchError,
    IPDataAggregator,
    SourceKind,
    build_default_adapters,
    fold_calls,
)
from app.tests.stubs import InFlightTracker, UnaddressableAdapter, docs_batch, patents_batch, pending_batch


def aggregate(settings, adapters, name="Acme", try_variants=True):
    aggregator = IPDataAggregator(settings=settings, adapters=list(adapters.values()))
    return asyncio.run(aggregator.aggregate(name, try_variants))


def test_single_name_with_failing_pending_source(settings, make_adapters) -> None:
    adapters = make_adapters(
        patents={"Acme": patents_batch("A1", "A2", "A3")},
        trademarks={"Acme": docs_batch(2)},
        pending={"Acme": FetchError("http-error", status=500)},
    )

    result = aggregate(settings, adapters, try_variants=False)

    assert (result.patents, result.trademarks, result.pending_apps) == (3, 2, 0)
    assert result.tried_assignees == ("Acme",)
    failures = [call for call in result.calls if not call.ok]
    assert len(failures) == 1
    assert failures[0].source is SourceKind.PENDING_APPLICATIONS
    assert len(result.calls) == 3


def test_patent_identifiers_deduplicated_across_variants(settings, make_adapters) -> None:
    adapters = make_adapters(
        patents={"Acme": patents_batch("A1", "A2"), "Acme LLC": patents_batch("A2", "A3")},
    )

    result = aggregate(settings, adapters)

    assert result.patents == 3
    assert adapters[SourceKind.PATENTS].seen.count("Acme") == 1


def test_trademarks_and_pending_counts_are_summed_per_variant(settings, make_adapters) -> None:
    adapters = make_adapters(
        trademarks={"Acme": docs_batch(2), "Acme INC": docs_batch(2)},
        pending={"Acme": pending_batch(3, provisionals=1), "Acme CORP": pending_batch(1, provisionals=1)},
    )

    result = aggregate(settings, adapters)

    assert result.trademarks == 4
    assert result.pending_apps == 4
    assert result.provisionals == 2
    assert result.pct_apps == 0
    assert result.foreign_national == 0
    assert result.estimates == {
        "provisionals": "heuristic",
        "pctApps": "unavailable",
        "foreignNational": "unavailable",
    }


def test_international_heuristics_marked_when_present(settings, make_adapters) -> None:
    adapters = make_adapters(pending={"Acme": pending_batch(2, pct=1, foreign_national=2)})

    result = aggregate(settings, adapters, try_variants=False)

    assert result.pct_apps == 1
    assert result.foreign_national == 2
    assert result.estimates["pctApps"] == "heuristic"


def test_all_sources_failing_still_returns_zero_counts(settings, make_adapters) -> None:
    failing = {name: FetchError("network-error") for name in ["Acme", "Acme LLC", "Acme L.L.C.", "Acme INC", "Acme INC.", "Acme CORP", "Acme LTD", "Acme COMPANY"]}
    adapters = make_adapters(patents=failing, trademarks=failing, pending=failing)

    result = aggregate(settings, adapters)

    assert (result.patents, result.trademarks, result.pending_apps, result.provisionals) == (0, 0, 0, 0)
    pairs = Counter((call.candidate, call.source) for call in result.calls)
    assert len(pairs) == len(result.tried_assignees) * 3
    assert set(pairs.values()) == {1}
    assert not any(call.ok for call in result.calls)


def test_trace_groups_follow_candidate_order(settings, make_adapters) -> None:
    adapters = make_adapters(patents={"Acme LTD": patents_batch("X")})
    # Later candidates resolve first; grouping must still follow variant order.
    adapters[SourceKind.TRADEMARKS].delay = 0.01

    result = aggregate(settings, adapters)

    assert [group.candidate for group in result.trace] == list(result.tried_assignees)
    for group in result.trace:
        assert {call.candidate for call in group.calls} == {group.candidate}
        assert {call.source for call in group.calls} == set(SourceKind)


def test_patent_count_independent_of_evaluation_order(settings, make_adapters) -> None:
    adapters = make_adapters(
        patents={
            "Acme": patents_batch("A1", "A2"),
            "Acme LLC": patents_batch("A2", "A3"),
            "Acme INC": patents_batch("A3", "A4"),
        },
        trademarks={"Acme": docs_batch(1)},
    )

    result = aggregate(settings, adapters)
    forward = fold_calls(result.calls)
    backward = fold_calls(reversed(result.calls))

    assert forward == backward
    assert len(forward.patent_ids) == result.patents == 4


def test_repeated_lookups_are_idempotent(settings, make_adapters) -> None:
    adapters = make_adapters(
        patents={"Acme": patents_batch("A1"), "Acme CORP": patents_batch("A1", "B7")},
        trademarks={"Acme": docs_batch(3)},
        pending={"Acme LLC": pending_batch(2, provisionals=1)},
    )

    first = aggregate(settings, adapters)
    second = aggregate(settings, adapters)

    counts = lambda result: (result.patents, result.trademarks, result.pending_apps, result.provisionals)
    assert counts(first) == counts(second) == (2, 3, 2, 1)


def test_deadline_turns_outstanding_calls_into_timeouts(settings, make_adapters) -> None:
    hurried = settings.model_copy(update={"aggregate_deadline_seconds": 0.05})
    adapters = make_adapters(
        patents={"Acme": patents_batch("A1")},
        delay={SourceKind.TRADEMARKS: 2.0},
    )

    result = aggregate(hurried, adapters, try_variants=False)

    assert result.patents == 1
    trademark_call = next(call for call in result.calls if call.source is SourceKind.TRADEMARKS)
    assert trademark_call.outcome.reason == "timeout"
    assert len(result.calls) == 3


def test_adapter_exception_is_contained(settings, make_adapters) -> None:
    adapters = make_adapters(
        patents={"Acme": patents_batch("A1")},
        trademarks={"Acme": RuntimeError("upstream parser exploded")},
    )

    result = aggregate(settings, adapters, try_variants=False)

    assert result.patents == 1
    broken = next(call for call in result.calls if call.source is SourceKind.TRADEMARKS)
    assert broken.outcome.reason == "adapter-error"
    assert "exploded" in broken.outcome.detail


def test_concurrency_is_bounded(settings, make_adapters) -> None:
    tracker = InFlightTracker()
    limited = settings.model_copy(update={"max_concurrency": 2})
    adapters = make_adapters(
        delay={kind: 0.01 for kind in SourceKind},
        tracker=tracker,
    )

    result = aggregate(limited, adapters)

    assert len(result.calls) == len(result.tried_assignees) * 3
    assert 1 <= tracker.peak <= 2


@pytest.mark.parametrize("name", ["", "   ", None])
def test_blank_assignee_is_rejected(settings, make_adapters, name) -> None:
    adapters = make_adapters()
    with pytest.raises(AssigneeValidationError):
        aggregate(settings, adapters, name=name)
    assert adapters[SourceKind.PATENTS].seen == []


def test_debug_trace_serialisation(settings, make_adapters) -> None:
    adapters = make_adapters(
        patents={"Acme": patents_batch("A1")},
        pending={"Acme": FetchError("http-error", status=503, detail="Service Unavailable")},
    )

    result = aggregate(settings, adapters, try_variants=False)
    (group,) = result.debug
    calls = {entry["source"]: entry for entry in group["calls"]}

    assert group["assignee"] == "Acme"
    assert calls["patents"]["ok"] is True
    assert calls["patents"]["count"] == 1
    assert calls["trademarks"]["warning"] == "no-matches"
    assert calls["pending_applications"] == {
        "source": "pending_applications",
        "url": "https://stub.test/pending_applications?q=Acme",
        "ok": False,
        "error": "http-error",
        "status": 503,
        "detail": "Service Unavailable",
    }


def test_default_adapters_end_to_end(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.patentsview.org":
            return httpx.Response(200, json={"patents": [{"patent_number": "9999999"}]})
        if request.url.path.startswith("/trademark"):
            return httpx.Response(200, json={"response": {"docs": [{}, {}, {}]}})
        if request.url.path == "/ibd-api/v1/application":
            return httpx.Response(200, json={"results": [{"kind": "provisional application"}]})
        return httpx.Response(404)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            aggregator = IPDataAggregator(settings=settings, adapters=build_default_adapters(client, settings))
            return await aggregator.aggregate("Acme", False)

    result = asyncio.run(run())

    assert (result.patents, result.trademarks, result.pending_apps, result.provisionals) == (1, 3, 1, 1)
    assert result.sources == ("USPTO PatentsView", "USPTO Trademarks", "USPTO Pending Applications")
    assert result.links["epo"] == "https://worldwide.espacenet.com/searchResults?query=PA:Acme"


def test_deadline_keeps_calls_finished_before_it_expires(settings, make_adapters) -> None:
    expired = settings.model_copy(update={"aggregate_deadline_seconds": 0.0})
    adapters = make_adapters(patents={"Acme": patents_batch("A1")}, trademarks={"Acme": docs_batch(2)})

    result = aggregate(expired, adapters, try_variants=False)

    assert len(result.calls) == 3
    assert all(call.ok for call in result.calls)
    assert (result.patents, result.trademarks) == (1, 2)


def test_url_failure_on_error_path_is_contained(settings, make_adapters) -> None:
    adapters = make_adapters(patents={"Acme": patents_batch("A1")})
    adapters[SourceKind.TRADEMARKS] = UnaddressableAdapter(SourceKind.TRADEMARKS, settings=settings)

    result = aggregate(settings, adapters, try_variants=False)

    assert result.patents == 1
    broken = next(call for call in result.calls if call.source is SourceKind.TRADEMARKS)
    assert broken.outcome.reason == "adapter-error"
    assert broken.url == ""
    assert broken.attempts[0].url == ""


def test_default_adapters_survive_unencodable_assignee(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.patentsview.org":
            return httpx.Response(200, json={"patents": [{"patent_number": "9999999"}]})
        return httpx.Response(200, json={"results": [{}]})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            aggregator = IPDataAggregator(settings=settings, adapters=build_default_adapters(client, settings))
            return await aggregator.aggregate("Acme\udcff", False)

    result = asyncio.run(run())

    assert len(result.calls) == 3
    outcomes = {call.source: call for call in result.calls}
    for kind in (SourceKind.TRADEMARKS, SourceKind.PENDING_APPLICATIONS):
        assert outcomes[kind].outcome.reason == "adapter-error"
        assert outcomes[kind].url == ""
    assert result.trademarks == result.pending_apps == 0
    assert result.links["epo"].endswith("PA:Acme%3F")


def test_default_adapters_report_international_heuristics(settings: Settings) -> None:
    heuristic = settings.model_copy(update={"heuristic_international_counts": True})
    applications = [
        {"applicationNumber": "WO2023123456", "kind": "PCT"},
        {"applicationNumber": "16/123,456", "entryType": "NATIONAL STAGE"},
        {"applicationNumber": "63/000,001", "applicationType": "Provisional"},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/ibd-api/v1/application":
            return httpx.Response(200, json={"results": applications})
        return httpx.Response(200, json={})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            aggregator = IPDataAggregator(settings=heuristic, adapters=build_default_adapters(client, heuristic))
            return await aggregator.aggregate("Acme", False)

    result = asyncio.run(run())

    assert result.pending_apps == 3
    assert result.provisionals == 1
    assert result.pct_apps == 1
    assert result.foreign_national == 1
    assert result.estimates == {"provisionals": "heuristic", "pctApps": "heuristic", "foreignNational": "heuristic"}
