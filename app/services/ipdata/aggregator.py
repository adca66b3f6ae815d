"""Fan-out of assignee lookups across name variants and registries."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from functools import reduce
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import quote

import httpx

from app.core.config import Settings, get_settings
from app.services.ipdata.adapters import (
    Attempt,
    NormalizedBatch,
    SourceAdapter,
    SourceCall,
    SourceKind,
    build_default_adapters,
)
from app.services.ipdata.classifiers import FilingClassifier
from app.services.ipdata.errors import ADAPTER_ERROR, TIMEOUT, FetchError
from app.services.ipdata.trace import Trace, TraceBuilder, serialise_trace
from app.services.ipdata.variations import generate_candidates

LOGGER = logging.getLogger(__name__)

HEURISTIC = "heuristic"
UNAVAILABLE = "unavailable"

WIPO_SEARCH_TEMPLATE = "https://patentscope.wipo.int/search/en/result.jsf?query=AP%3A%22{name}%22"
EPO_SEARCH_TEMPLATE = "https://worldwide.espacenet.com/searchResults?query=PA:{name}"


# ---------------------------------------------------------------------------
# Folding call outcomes into totals
# ---------------------------------------------------------------------------


def _add_optional(left: Optional[int], right: Optional[int]) -> Optional[int]:
    if left is None and right is None:
        return None
    return (left or 0) + (right or 0)


@dataclass(frozen=True)
class Totals:
    patent_ids: FrozenSet[str] = frozenset()
    trademarks: int = 0
    pending_apps: int = 0
    provisionals: int = 0
    pct: Optional[int] = None
    foreign_national: Optional[int] = None

    def absorb(self, call: SourceCall) -> "Totals":
        outcome = call.outcome
        if not isinstance(outcome, NormalizedBatch):
            return self
        if call.source is SourceKind.PATENTS:
            return replace(self, patent_ids=self.patent_ids | outcome.identifiers)
        if call.source is SourceKind.TRADEMARKS:
            return replace(self, trademarks=self.trademarks + outcome.raw_count)
        if call.source is SourceKind.PENDING_APPLICATIONS:
            signals = outcome.signals
            if signals is None:
                return replace(self, pending_apps=self.pending_apps + outcome.raw_count)
            return replace(
                self,
                pending_apps=self.pending_apps + outcome.raw_count,
                provisionals=self.provisionals + signals.provisionals,
                pct=_add_optional(self.pct, signals.pct),
                foreign_national=_add_optional(self.foreign_national, signals.foreign_national),
            )
        return self


def fold_calls(calls: Iterable[SourceCall]) -> Totals:
    """Combine resolved calls into totals; the order of ``calls`` does not matter."""

    return reduce(Totals.absorb, calls, Totals())


# ---------------------------------------------------------------------------
# Aggregate result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AggregateResult:
    assignee_queried: str
    tried_assignees: Tuple[str, ...]
    patents: int
    trademarks: int
    pending_apps: int
    provisionals: int
    pct_apps: int
    foreign_national: int
    estimates: Dict[str, str]
    trace: Trace
    sources: Tuple[str, ...] = ()
    links: Dict[str, str] = field(default_factory=dict)
    last_updated: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def debug(self) -> List[Dict[str, Any]]:
        return serialise_trace(self.trace)

    @property
    def calls(self) -> List[SourceCall]:
        return [call for group in self.trace for call in group.calls]


def build_links(assignee: str) -> Dict[str, str]:
    """Manual search links for registries that are not queried directly."""

    encoded = quote(assignee, safe="", errors="replace")
    return {
        "wipo": WIPO_SEARCH_TEMPLATE.format(name=encoded),
        "epo": EPO_SEARCH_TEMPLATE.format(name=encoded),
    }


def build_estimates(totals: Totals) -> Dict[str, str]:
    return {
        "provisionals": HEURISTIC,
        "pctApps": HEURISTIC if totals.pct is not None else UNAVAILABLE,
        "foreignNational": HEURISTIC if totals.foreign_national is not None else UNAVAILABLE,
    }


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class IPDataAggregator:
    """Query every registry for every name variant and merge the counts.

    Adapter failures are recorded in the trace and contribute nothing; the
    lookup itself only fails when the assignee is blank.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        adapters: Optional[Sequence[SourceAdapter]] = None,
        classifier: Optional[FilingClassifier] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._adapters = list(adapters) if adapters is not None else None
        self._classifier = classifier

    async def aggregate(self, base_name: Optional[str], try_variants: Optional[bool] = None) -> AggregateResult:
        if try_variants is None:
            try_variants = self.settings.try_variants_default
        candidates = generate_candidates(base_name, try_variants, self.settings.variant_suffixes)

        if self._adapters is not None:
            adapters = self._adapters
            trace = await self._dispatch(candidates, adapters)
        else:
            async with httpx.AsyncClient(
                timeout=self.settings.request_timeout_seconds,
                headers={"User-Agent": self.settings.user_agent, "Accept": "application/json"},
                follow_redirects=True,
            ) as client:
                adapters = build_default_adapters(client, self.settings, self._classifier)
                trace = await self._dispatch(candidates, adapters)

        totals = fold_calls(call for group in trace for call in group.calls)
        failures = sum(1 for group in trace for call in group.calls if not call.ok)
        LOGGER.info(
            "Aggregated %r over %s variant(s): patents=%s trademarks=%s pending=%s (%s failed call(s))",
            candidates[0],
            len(candidates),
            len(totals.patent_ids),
            totals.trademarks,
            totals.pending_apps,
            failures,
        )

        return AggregateResult(
            assignee_queried=candidates[0],
            tried_assignees=tuple(candidates),
            patents=len(totals.patent_ids),
            trademarks=totals.trademarks,
            pending_apps=totals.pending_apps,
            provisionals=totals.provisionals,
            pct_apps=totals.pct or 0,
            foreign_national=totals.foreign_national or 0,
            estimates=build_estimates(totals),
            trace=trace,
            sources=tuple(dict.fromkeys(_registry_label(adapter) for adapter in adapters)),
            links=build_links(candidates[0]),
        )

    async def _dispatch(self, candidates: Sequence[str], adapters: Sequence[SourceAdapter]) -> Trace:
        builder = TraceBuilder(candidates)
        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async def bounded(adapter: SourceAdapter, candidate: str) -> SourceCall:
            async with semaphore:
                return await adapter.lookup(candidate)

        jobs: Dict[asyncio.Task, Tuple[int, str, SourceAdapter]] = {}
        for candidate in candidates:
            for adapter in adapters:
                task = asyncio.create_task(bounded(adapter, candidate))
                jobs[task] = (len(jobs), candidate, adapter)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.aggregate_deadline_seconds
        pending = set(jobs)
        try:
            while pending:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                done, pending = await asyncio.wait(
                    pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )
                for task in sorted(done, key=lambda item: jobs[item][0]):
                    _, candidate, adapter = jobs[task]
                    builder.record(self._resolve(task, candidate, adapter))
            if pending:
                # Collect calls that finished in the same slice the deadline expired.
                done, pending = await asyncio.wait(pending, timeout=0)
                for task in sorted(done, key=lambda item: jobs[item][0]):
                    _, candidate, adapter = jobs[task]
                    builder.record(self._resolve(task, candidate, adapter))
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if pending:
            LOGGER.warning(
                "Deadline of %ss reached with %s lookup(s) outstanding",
                self.settings.aggregate_deadline_seconds,
                len(pending),
            )
        for task in sorted(pending, key=lambda item: jobs[item][0]):
            _, candidate, adapter = jobs[task]
            builder.record(
                _failed_call(adapter, candidate, FetchError(TIMEOUT, detail="aggregate deadline exceeded"))
            )

        return builder.build()

    @staticmethod
    def _resolve(task: asyncio.Task, candidate: str, adapter: SourceAdapter) -> SourceCall:
        exc = task.exception()
        if exc is None:
            return task.result()
        LOGGER.error("Adapter %s raised for %r", adapter.kind.value, candidate, exc_info=exc)
        return _failed_call(adapter, candidate, FetchError(ADAPTER_ERROR, detail=str(exc) or exc.__class__.__name__))


def _failed_call(adapter: SourceAdapter, candidate: str, error: FetchError) -> SourceCall:
    url = _describe_url(adapter, candidate)
    return SourceCall(
        source=adapter.kind,
        candidate=candidate,
        url=url,
        outcome=error,
        attempts=(Attempt(url, error),),
    )


def _describe_url(adapter: SourceAdapter, candidate: str) -> str:
    """URL for a failed call's trace entry; empty when the adapter cannot build one."""

    try:
        return str(adapter.build_url(candidate))
    except Exception as exc:
        LOGGER.debug("No URL for %s lookup of %r: %s", adapter.kind.value, candidate, exc)
        return ""


def _registry_label(adapter: SourceAdapter) -> str:
    return adapter.registry or adapter.kind.value
