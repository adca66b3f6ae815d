"""Pydantic schemas for the IP data endpoint."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from app.services.ipdata import AggregateResult


DISCLAIMER = "Best-effort public registry counts – not legal advice."


class CandidateTraceRead(BaseModel):
    assignee: str = Field(..., description="Name variant the calls were made with.")
    calls: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="One entry per registry: URL tried, outcome, count or error.",
    )


class IPDataResponse(BaseModel):
    assignee_queried: str = Field(..., alias="assigneeQueried")
    tried_assignees: List[str] = Field(..., alias="triedAssignees")
    patents: int = Field(..., description="Distinct patent numbers across all name variants.")
    pending_apps: int = Field(..., alias="pendingApps")
    pct_apps: int = Field(0, alias="pctApps")
    foreign_national: int = Field(0, alias="foreignNational")
    provisionals: int = Field(0, description="Keyword estimate over a sample of pending applications.")
    trademarks: int
    estimates: Dict[str, str] = Field(
        default_factory=dict,
        description="How approximate fields were derived (heuristic or unavailable).",
    )
    source: List[str] = Field(default_factory=list, description="Registries queried.")
    last_updated: datetime = Field(..., alias="lastUpdated")
    links: Dict[str, str] = Field(
        default_factory=dict, description="Manual search links for WIPO and EPO."
    )
    disclaimer: str = DISCLAIMER
    debug: List[CandidateTraceRead] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: AggregateResult) -> "IPDataResponse":
        return cls(
            assignee_queried=result.assignee_queried,
            tried_assignees=list(result.tried_assignees),
            patents=result.patents,
            pending_apps=result.pending_apps,
            pct_apps=result.pct_apps,
            foreign_national=result.foreign_national,
            provisionals=result.provisionals,
            trademarks=result.trademarks,
            estimates=result.estimates,
            source=list(result.sources),
            last_updated=result.last_updated,
            links=result.links,
            debug=[CandidateTraceRead(**group) for group in result.debug],
        )
