"""Assignee name expansion into corporate-suffix variants."""

from __future__ import annotations

from typing import List, Optional, Sequence

from app.core.config import DEFAULT_SUFFIXES
from app.services.ipdata.errors import AssigneeValidationError


def normalise_assignee(raw: Optional[str]) -> str:
    """Trim the assignee and reject missing or blank values."""

    name = (raw or "").strip()
    if not name:
        raise AssigneeValidationError("Missing ?assignee=")
    return name


def generate_candidates(
    base_name: Optional[str],
    try_variants: bool = True,
    suffixes: Sequence[str] = DEFAULT_SUFFIXES,
) -> List[str]:
    """Return the names to try, the trimmed base name always first.

    Variants are ``base + suffix`` for each suffix, trimmed, with blanks and
    exact duplicates dropped while keeping first-seen order.
    """

    base = normalise_assignee(base_name)
    if not try_variants:
        return [base]

    expanded = [base, *(f"{base}{suffix}".strip() for suffix in suffixes)]
    return list(dict.fromkeys(name for name in expanded if name))
