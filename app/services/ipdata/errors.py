"""Error taxonomy for IP data lookups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


TIMEOUT = "timeout"
NETWORK_ERROR = "network-error"
HTTP_ERROR = "http-error"
INVALID_RESPONSE = "invalid-response"
ADAPTER_ERROR = "adapter-error"

# A successful upstream call with zero items: a valid "no match", not a failure.
NO_MATCHES_WARNING = "no-matches"


class AssigneeValidationError(ValueError):
    """Raised when the assignee name is missing or blank."""


@dataclass(frozen=True)
class FetchError:
    """Failure of a single upstream call, carried as data rather than raised."""

    reason: str
    status: Optional[int] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return False
