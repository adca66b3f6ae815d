"""Pluggable filing sub-type classifiers for pending-application payloads.

The keyword classifier is an approximation: it pattern-matches serialized
JSON of a small item sample. Counts it produces are labelled ``heuristic``
in API responses and must never be read as authoritative.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence


@dataclass(frozen=True)
class FilingSignals:
    """Sub-type counts for one batch; ``None`` means the signal was not computed."""

    provisionals: int = 0
    pct: Optional[int] = None
    foreign_national: Optional[int] = None


class FilingClassifier(Protocol):
    """Interface for turning raw pending-application items into sub-type counts."""

    name: str

    def classify(self, items: Sequence[Any]) -> FilingSignals:
        ...


PROVISIONAL_PATTERN = r"provisional"

INTERNATIONAL_PATTERNS = {
    "pct": r"\"WO|WO/|WO\d{2}",
    "foreign_national": r"NATIONAL|COUNTRY|DESIGNATED",
}


def detect_matches(items: Sequence[Any], pattern: str) -> int:
    """Count items whose JSON serialization matches ``pattern`` (case-insensitive)."""

    compiled = re.compile(pattern, flags=re.IGNORECASE)
    return sum(1 for item in items if compiled.search(json.dumps(item, default=str)))


class KeywordFilingClassifier:
    """Regex classifier over serialized items.

    Provisional detection is always on. PCT and foreign-national detection
    are far noisier, so they stay uncomputed unless ``international`` is set.
    """

    name = "keyword"

    def __init__(
        self,
        international: bool = False,
        provisional_pattern: str = PROVISIONAL_PATTERN,
        international_patterns: Optional[Dict[str, str]] = None,
    ) -> None:
        self.international = international
        self.provisional_pattern = provisional_pattern
        self.international_patterns = international_patterns or INTERNATIONAL_PATTERNS

    def classify(self, items: Sequence[Any]) -> FilingSignals:
        provisionals = detect_matches(items, self.provisional_pattern)
        if not self.international:
            return FilingSignals(provisionals=provisionals)
        return FilingSignals(
            provisionals=provisionals,
            pct=detect_matches(items, self.international_patterns["pct"]),
            foreign_national=detect_matches(items, self.international_patterns["foreign_national"]),
        )
