"""Assignee IP activity endpoint."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from app import schemas
from app.api.dependencies import Aggregator
from app.services import AssigneeValidationError

router = APIRouter(tags=["ipdata"])

logger = logging.getLogger(__name__)


@router.get("/ipdata", response_model=schemas.IPDataResponse)
async def get_ip_data(
    aggregator: Aggregator,
    assignee: Optional[str] = Query(None, description="Organization name to look up."),
    try_variants: Optional[bool] = Query(
        None,
        alias="tryVariants",
        description="Also query common corporate-suffix variants of the name.",
    ),
) -> schemas.IPDataResponse:
    """Return merged patent, trademark and pending-application counts for an assignee."""

    try:
        result = await aggregator.aggregate(assignee, try_variants)
    except AssigneeValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return schemas.IPDataResponse.from_result(result)
