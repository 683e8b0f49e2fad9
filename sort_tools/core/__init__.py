"""Core types, configuration, errors and run instrumentation."""

from .config import Settings, get_settings
from .errors import (
    AlreadyRolledBackError,
    ClassificationError,
    ConflictSkip,
    InvalidPathError,
    JournalFormatError,
    OracleError,
    ScanLimitExceeded,
    SecurityViolation,
    SortToolsError,
    TooManyConflictsError,
    UnknownSessionError,
)
from .metrics import MetricsCollector, RunMetrics
from .telemetry import TelemetryService, UnknownErrorReport
from .types import (
    ClassificationResult,
    ConflictStrategy,
    ErrorKind,
    ItemFailure,
    OperationOutcome,
    OrganizeReport,
    WorkItem,
)

__all__ = [
    "Settings",
    "get_settings",
    "AlreadyRolledBackError",
    "ClassificationError",
    "ConflictSkip",
    "InvalidPathError",
    "JournalFormatError",
    "OracleError",
    "ScanLimitExceeded",
    "SecurityViolation",
    "SortToolsError",
    "TooManyConflictsError",
    "UnknownSessionError",
    "MetricsCollector",
    "RunMetrics",
    "TelemetryService",
    "UnknownErrorReport",
    "ClassificationResult",
    "ConflictStrategy",
    "ErrorKind",
    "ItemFailure",
    "OperationOutcome",
    "OrganizeReport",
    "WorkItem",
]
