# sqltutor/core/__init__.py
# Core types: dataset index, canonicalizer, row selector, trace logger.
# Authoritative import source for policy-facing operations.

from sqltutor.core.exceptions import (
    TutorError,
    ConfigurationError,
    IntegrityViolationError,
    DriftDetectedError,
    HarnessError,
)
from sqltutor.core.dataset_index import (
    DatasetRow,
    SubtypeIndex,
    parse_dataset,
    load_dataset,
)
from sqltutor.core.canonicalizer import (
    ResolutionKind,
    SubtypeResolution,
    canonicalize,
    resolve_subtype,
    require_fallback,
    normalize_sql_error_subtype,
)
from sqltutor.core.row_selector import (
    stable_hash,
    stable_hash_hex,
    select_row,
    select_anchor_row,
)
from sqltutor.core.trace_logger import (
    DecisionTraceLogger,
    DecisionEvent,
    Event,
    LoggingError,
)
