"""
Mapping from exceptions to error kinds.

The scheduler decides whether to retry, report or drop a failed item based on
the ``ErrorKind`` returned here. The mapping looks at exception types and
structured attributes only, never at message text.
"""

import concurrent.futures
import socket
from typing import Callable, Optional

from pydantic import ValidationError

from ..core.errors import InvalidPathError, OracleError
from ..core.types import ErrorKind

ErrorClassifier = Callable[[BaseException], ErrorKind]

NETWORK_ERRORS = (
    TimeoutError,
    ConnectionError,
    socket.timeout,
    concurrent.futures.TimeoutError,
)


def _status_of(error: BaseException) -> Optional[int]:
    """HTTP-style status carried by client library exceptions, if any."""
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(error, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def classify_error(error: BaseException) -> ErrorKind:
    """
    Classify a failed oracle or hashing call.

    Args:
        error: Exception raised while processing a file

    Returns:
        The matching ``ErrorKind``; ``UNKNOWN`` when nothing applies
    """
    if isinstance(error, OracleError):
        return error.kind

    # Checked before OSError: TimeoutError and ConnectionError subclass it
    if isinstance(error, NETWORK_ERRORS):
        return ErrorKind.NETWORK

    status = _status_of(error)
    if status is not None:
        if status == 429:
            return ErrorKind.API_LIMIT
        if status in (401, 403):
            return ErrorKind.AUTH
        if status >= 500:
            return ErrorKind.API_ERROR

    if isinstance(error, ValidationError):
        return ErrorKind.API_ERROR

    if isinstance(error, (InvalidPathError, OSError)):
        return ErrorKind.INVALID_FILE

    return ErrorKind.UNKNOWN


ERROR_LABELS = {
    ErrorKind.NETWORK: "Network error",
    ErrorKind.API_LIMIT: "API rate limit exceeded",
    ErrorKind.AUTH: "Authentication error",
    ErrorKind.API_ERROR: "API server error",
    ErrorKind.INVALID_FILE: "Invalid file",
    ErrorKind.UNKNOWN: "Unknown error",
}


def describe_error(kind: ErrorKind, error: BaseException) -> str:
    """Short message for logs and failure reports."""
    return f"{ERROR_LABELS[kind]}: {error}"
