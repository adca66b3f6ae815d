"""Shared API dependencies for FastAPI routes."""

from typing import Annotated

from fastapi import Depends

from app.core.config import get_settings
from app.services import IPDataAggregator


def get_aggregator() -> IPDataAggregator:
    """Build a fresh aggregator per request; lookups share no state."""

    return IPDataAggregator(settings=get_settings())


Aggregator = Annotated[IPDataAggregator, Depends(get_aggregator)]
