"""Per-lookup debug trace returned alongside aggregate IP counts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from app.services.ipdata.adapters import NormalizedBatch, SourceCall, SourceKind
from app.services.ipdata.errors import NO_MATCHES_WARNING, FetchError


@dataclass(frozen=True)
class CandidateTrace:
    candidate: str
    calls: Tuple[SourceCall, ...]


Trace = Tuple[CandidateTrace, ...]


class TraceBuilder:
    """Append-only collector of source calls for one aggregate lookup.

    Calls are recorded as they resolve. :meth:`build` groups them per
    candidate in candidate order and freezes the result; recording after
    that is an error.
    """

    def __init__(self, candidates: Sequence[str]) -> None:
        self._candidates = list(candidates)
        self._calls: List[SourceCall] = []
        self._frozen = False

    def record(self, call: SourceCall) -> None:
        if self._frozen:
            raise RuntimeError("Trace already built; no further calls can be recorded.")
        if call.candidate not in self._candidates:
            raise ValueError(f"Unknown candidate {call.candidate!r} in trace record.")
        self._calls.append(call)

    def __len__(self) -> int:
        return len(self._calls)

    def build(self) -> Trace:
        self._frozen = True
        return tuple(
            CandidateTrace(
                candidate=candidate,
                calls=tuple(call for call in self._calls if call.candidate == candidate),
            )
            for candidate in self._candidates
        )


def serialise_call(call: SourceCall) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"source": call.source.value, "url": call.url, "ok": call.ok}
    outcome = call.outcome
    if isinstance(outcome, NormalizedBatch):
        entry["count"] = outcome.raw_count
        entry["shape"] = outcome.shape
        if not outcome.raw_count:
            entry["warning"] = NO_MATCHES_WARNING
        if call.source is SourceKind.PENDING_APPLICATIONS:
            entry["sample"] = list(outcome.sample)
    else:
        entry.update(serialise_error(outcome))
    if len(call.attempts) > 1:
        entry["attempts"] = [
            {
                "url": attempt.url,
                "ok": attempt.error is None,
                **(serialise_error(attempt.error) if attempt.error else {}),
            }
            for attempt in call.attempts
        ]
    return entry


def serialise_error(error: FetchError) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"error": error.reason}
    if error.status is not None:
        payload["status"] = error.status
    if error.detail:
        payload["detail"] = error.detail
    return payload


def serialise_trace(trace: Trace) -> List[Dict[str, Any]]:
    return [
        {"assignee": group.candidate, "calls": [serialise_call(call) for call in group.calls]}
        for group in trace
    ]
