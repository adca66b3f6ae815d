"""Upstream registry adapters for patents, trademarks and pending applications."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

import httpx

from app.core.config import Settings, get_settings
from app.services.ipdata.classifiers import FilingClassifier, FilingSignals, KeywordFilingClassifier
from app.services.ipdata.errors import (
    HTTP_ERROR,
    INVALID_RESPONSE,
    NETWORK_ERROR,
    TIMEOUT,
    FetchError,
)
from app.services.ipdata.shapes import ResponseShape, probe_items, probes

LOGGER = logging.getLogger(__name__)


class SourceKind(str, Enum):
    PATENTS = "patents"
    TRADEMARKS = "trademarks"
    PENDING_APPLICATIONS = "pending_applications"


# ---------------------------------------------------------------------------
# Call outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NormalizedBatch:
    """Successful lookup reduced to what the aggregator needs."""

    items: Tuple[Any, ...]
    raw_count: int
    shape: str
    identifiers: FrozenSet[str] = frozenset()
    signals: Optional[FilingSignals] = None
    sample: Tuple[Any, ...] = ()

    @property
    def ok(self) -> bool:
        return True


LookupResult = Union[NormalizedBatch, FetchError]


@dataclass(frozen=True)
class Attempt:
    url: str
    error: Optional[FetchError] = None


@dataclass(frozen=True)
class SourceCall:
    """One resolved lookup of one candidate against one source."""

    source: SourceKind
    candidate: str
    url: str
    outcome: LookupResult
    attempts: Tuple[Attempt, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.outcome.ok


# ---------------------------------------------------------------------------
# Adapter base
# ---------------------------------------------------------------------------


class SourceAdapter:
    """Base class: builds the request, performs it and normalizes the payload."""

    kind: SourceKind
    registry = "upstream"
    shapes: Tuple[ResponseShape, ...] = probes("results", "data")

    def __init__(self, client: httpx.AsyncClient, settings: Optional[Settings] = None) -> None:
        self._client = client
        self.settings = settings or get_settings()

    def build_url(self, candidate: str) -> httpx.URL:
        raise NotImplementedError

    def normalise(self, payload: Any) -> NormalizedBatch:
        shape, items = probe_items(payload, self.shapes)
        return NormalizedBatch(items=tuple(items), raw_count=len(items), shape=shape.label)

    async def lookup(self, candidate: str) -> SourceCall:
        url = self.build_url(candidate)
        outcome = await self._fetch(url)
        return SourceCall(
            source=self.kind,
            candidate=candidate,
            url=str(url),
            outcome=outcome,
            attempts=(Attempt(str(url), None if outcome.ok else outcome),),
        )

    async def _fetch(self, url: httpx.URL) -> LookupResult:
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as exc:
            LOGGER.warning("%s request timed out: %s", self.kind.value, url)
            return FetchError(TIMEOUT, detail=str(exc) or None)
        except httpx.HTTPError as exc:
            LOGGER.warning("%s request failed: %s (%s)", self.kind.value, url, exc)
            return FetchError(NETWORK_ERROR, detail=str(exc) or exc.__class__.__name__)

        if not response.is_success:
            LOGGER.warning("%s returned HTTP %s for %s", self.kind.value, response.status_code, url)
            return FetchError(HTTP_ERROR, status=response.status_code, detail=response.reason_phrase)

        try:
            payload = response.json()
        except ValueError:
            LOGGER.warning("%s returned a non-JSON body for %s", self.kind.value, url)
            return FetchError(INVALID_RESPONSE, status=response.status_code)

        return self.normalise(payload)


# ---------------------------------------------------------------------------
# Adapter implementations
# ---------------------------------------------------------------------------


class PatentsAdapter(SourceAdapter):
    """PatentsView query by assignee organization; yields patent identifiers."""

    kind = SourceKind.PATENTS
    registry = "USPTO PatentsView"
    shapes = probes("patents", "results", "data")
    identifier_keys = ("patent_number", "patent_id", "patentNumber")

    def build_url(self, candidate: str) -> httpx.URL:
        params = {
            "q": json.dumps({"assignee_organization": candidate}),
            "f": json.dumps(["patent_number"]),
            "o": json.dumps({"per_page": self.settings.page_size}),
        }
        return httpx.URL(self.settings.patents_api_url, params=params)

    def normalise(self, payload: Any) -> NormalizedBatch:
        batch = super().normalise(payload)
        return NormalizedBatch(
            items=batch.items,
            raw_count=batch.raw_count,
            shape=batch.shape,
            identifiers=frozenset(extract_identifiers(batch.items, self.identifier_keys)),
        )


def extract_identifiers(items: Sequence[Any], keys: Sequence[str]) -> List[str]:
    identifiers = []
    for item in items:
        if not isinstance(item, dict):
            continue
        value = next((item.get(key) for key in keys if item.get(key)), None)
        if value is not None and str(value).strip():
            identifiers.append(str(value).strip())
    return identifiers


class TrademarksAdapter(SourceAdapter):
    """USPTO trademark search by owner; every returned document counts once."""

    kind = SourceKind.TRADEMARKS
    registry = "USPTO Trademarks"
    shapes = probes("response.docs", "docs", "results", "data")

    def build_url(self, candidate: str) -> httpx.URL:
        params = {"searchText": f"owner:{candidate}", "rows": self.settings.page_size}
        return httpx.URL(self.settings.trademarks_api_url, params=params)


@dataclass(frozen=True)
class Endpoint:
    """Pending-application endpoint shape: base URL plus a param template.

    ``{name}`` and ``{rows}`` placeholders in param values are filled per call.
    """

    url: str
    params: Dict[str, str]

    def build(self, candidate: str, rows: int) -> httpx.URL:
        filled = {key: value.format(name=candidate, rows=rows) for key, value in self.params.items()}
        return httpx.URL(self.url, params=filled)


class PendingApplicationsAdapter(SourceAdapter):
    """Pending-application search with fallback endpoints and filing heuristics."""

    kind = SourceKind.PENDING_APPLICATIONS
    registry = "USPTO Pending Applications"
    shapes = probes("results", "response.docs", "applications", "patentFileWrapperDataBag", "data")

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Optional[Settings] = None,
        classifier: Optional[FilingClassifier] = None,
        endpoints: Optional[Sequence[Endpoint]] = None,
    ) -> None:
        super().__init__(client, settings)
        self.classifier = classifier or KeywordFilingClassifier(
            international=self.settings.heuristic_international_counts
        )
        self.endpoints = tuple(endpoints) if endpoints is not None else default_pending_endpoints(self.settings)

    def build_url(self, candidate: str) -> httpx.URL:
        return self.endpoints[0].build(candidate, self.settings.page_size)

    def normalise(self, payload: Any) -> NormalizedBatch:
        batch = super().normalise(payload)
        sample = batch.items[: self.settings.classifier_sample_size]
        return NormalizedBatch(
            items=batch.items,
            raw_count=batch.raw_count,
            shape=batch.shape,
            signals=self.classifier.classify(sample),
            sample=sample,
        )

    async def lookup(self, candidate: str) -> SourceCall:
        attempts: List[Attempt] = []
        outcome: LookupResult = FetchError(NETWORK_ERROR, detail="no endpoints configured")
        url = ""
        for endpoint in self.endpoints:
            target = endpoint.build(candidate, self.settings.page_size)
            url = str(target)
            outcome = await self._fetch(target)
            attempts.append(Attempt(url, None if outcome.ok else outcome))
            if outcome.ok:
                break
            LOGGER.info("Pending-application endpoint failed for %r, trying fallback", candidate)
        return SourceCall(
            source=self.kind,
            candidate=candidate,
            url=url,
            outcome=outcome,
            attempts=tuple(attempts),
        )


def default_pending_endpoints(settings: Settings) -> Tuple[Endpoint, ...]:
    endpoints = [
        Endpoint(settings.pending_apps_api_url, {"searchText": "applicant:{name}", "rows": "{rows}"}),
    ]
    if settings.pending_apps_fallback_url:
        endpoints.append(
            Endpoint(settings.pending_apps_fallback_url, {"applicantName": "{name}", "rows": "{rows}"})
        )
    return tuple(endpoints)


def build_default_adapters(
    client: httpx.AsyncClient,
    settings: Optional[Settings] = None,
    classifier: Optional[FilingClassifier] = None,
) -> List[SourceAdapter]:
    """Adapters for every supported registry, sharing one HTTP client."""

    settings = settings or get_settings()
    return [
        PatentsAdapter(client, settings),
        TrademarksAdapter(client, settings),
        PendingApplicationsAdapter(client, settings, classifier=classifier),
    ]
