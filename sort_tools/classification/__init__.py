"""
Classification pipeline: scanning, error mapping, oracle boundary and the
concurrent scheduler.
"""

from .classifier import ERROR_LABELS, classify_error, describe_error
from .oracle import (
    ClassificationOptions,
    ClassificationOracle,
    OracleVerdict,
    to_verdict,
)
from .scanner import DEFAULT_MAX_FILES, DirectoryScanner, scan_directory
from .scheduler import ClassificationScheduler

__all__ = [
    "ERROR_LABELS",
    "classify_error",
    "describe_error",
    "ClassificationOptions",
    "ClassificationOracle",
    "OracleVerdict",
    "to_verdict",
    "DEFAULT_MAX_FILES",
    "DirectoryScanner",
    "scan_directory",
    "ClassificationScheduler",
]
