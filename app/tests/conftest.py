import sys
from pathlib import Path

import pytest

# Ensure the `app` package is importable when running pytest from the repo root.
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.config import Settings  # noqa: E402
from app.services.ipdata import SourceKind  # noqa: E402
from app.tests.stubs import StubAdapter  # noqa: E402


@pytest.fixture
def settings():
    return Settings(
        aggregate_deadline_seconds=5.0,
        request_timeout_seconds=5.0,
        max_concurrency=4,
        page_size=25,
        classifier_sample_size=5,
    )


@pytest.fixture
def make_adapters(settings):
    """Factory for one stub adapter per source kind, keyed by kind."""

    def factory(patents=None, trademarks=None, pending=None, delay=None, tracker=None):
        delay = delay or {}
        responses = {
            SourceKind.PATENTS: patents,
            SourceKind.TRADEMARKS: trademarks,
            SourceKind.PENDING_APPLICATIONS: pending,
        }
        return {
            kind: StubAdapter(kind, canned, settings, delay.get(kind, 0.0), tracker)
            for kind, canned in responses.items()
        }

    return factory
