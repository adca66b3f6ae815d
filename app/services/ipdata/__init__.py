"""Assignee IP activity lookups across public registries."""

from .adapters import (  # noqa: F401
    Endpoint,
    NormalizedBatch,
    PatentsAdapter,
    PendingApplicationsAdapter,
    SourceAdapter,
    SourceCall,
    SourceKind,
    TrademarksAdapter,
    build_default_adapters,
)
from .aggregator import AggregateResult, IPDataAggregator, fold_calls  # noqa: F401
from .classifiers import FilingClassifier, FilingSignals, KeywordFilingClassifier  # noqa: F401
from .errors import AssigneeValidationError, FetchError  # noqa: F401
from .shapes import Empty, NamedField, ResponseShape, probe_items  # noqa: F401
from .trace import TraceBuilder, serialise_trace  # noqa: F401
from .variations import generate_candidates  # noqa: F401
