"""Application configuration via environment variables."""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SUFFIXES = (" LLC", " L.L.C.", " INC", " INC.", " CORP", " LTD", " COMPANY")


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = Field("PatentProfiler IP Data", description="Human-readable service name.")
    environment: str = Field("dev", description="Deployment environment tag.")
    debug: bool = Field(False, description="Enable FastAPI debug mode.")
    log_level: str = Field("INFO", description="Root logging level for the service.")

    api_v1_prefix: str = Field("/api", description="Root prefix for API routes.")
    frontend_origin: Optional[HttpUrl] = Field(
        None, description="Optional frontend origin allowed for CORS policies."
    )

    patents_api_url: str = Field(
        "https://api.patentsview.org/patents/query",
        description="PatentsView query endpoint searched by assignee organization.",
    )
    trademarks_api_url: str = Field(
        "https://developer.uspto.gov/trademark/v1/trademark/search",
        description="USPTO trademark search endpoint searched by owner.",
    )
    pending_apps_api_url: str = Field(
        "https://developer.uspto.gov/ibd-api/v1/application",
        description="Primary pending-application search endpoint.",
    )
    pending_apps_fallback_url: Optional[str] = Field(
        "https://developer.uspto.gov/ibd-api/v1/patent/application",
        description="Alternate pending-application endpoint tried only when the primary fails.",
    )
    user_agent: str = Field("patent-profiler/0.1", description="User-Agent sent upstream.")

    request_timeout_seconds: float = Field(
        30.0, description="Timeout applied to each upstream HTTP request."
    )
    aggregate_deadline_seconds: float = Field(
        45.0, description="Overall deadline for one aggregate lookup across all sources."
    )
    max_concurrency: int = Field(
        6, ge=1, description="Maximum simultaneous upstream requests per lookup."
    )
    page_size: int = Field(100, ge=1, description="Fixed page size requested from registries.")

    try_variants_default: bool = Field(
        True, description="Expand the assignee into suffix variants when not specified."
    )
    variant_suffixes: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SUFFIXES),
        description="Corporate suffixes appended to the assignee when expanding variants.",
    )
    classifier_sample_size: int = Field(
        5, ge=0, description="Pending-application items inspected by the filing classifier."
    )
    heuristic_international_counts: bool = Field(
        False,
        description="Report keyword-based PCT / foreign-national estimates instead of zero.",
    )

    allowed_hosts: List[str] = Field(
        default_factory=lambda: ["*"], description="Hosts allowed to access the service."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache()
def get_settings() -> Settings:
    """Provide a cached Settings instance."""

    return Settings()
