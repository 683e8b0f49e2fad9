"""
Shared utilities for sort-tools.

Path sanitization, content fingerprints and logging setup used by every
stage of the pipeline.
"""

from .file_utils import (
    MAX_FULL_HASH_SIZE,
    LARGE_FILE_SAMPLE_SIZE,
    compute_fingerprint,
    format_bytes,
    is_safe_filename,
    setup_logging,
)
from .path_guard import PathGuard, validate_path

__all__ = [
    "MAX_FULL_HASH_SIZE",
    "LARGE_FILE_SAMPLE_SIZE",
    "compute_fingerprint",
    "format_bytes",
    "is_safe_filename",
    "setup_logging",
    "PathGuard",
    "validate_path",
]
