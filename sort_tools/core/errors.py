"""
Exception hierarchy for sort-tools.

I/O failures are left as the built-in ``OSError``; everything the pipeline
raises on its own derives from ``SortToolsError``.
"""

from pathlib import Path
from typing import Optional, Union

from .types import ErrorKind

PathLike = Union[str, Path]


class SortToolsError(Exception):
    """Base class for all sort-tools errors."""


class InvalidPathError(SortToolsError, ValueError):
    """A user-supplied path failed sanitization."""


class SecurityViolation(SortToolsError):
    """A computed destination escaped its base directory."""


class ConflictSkip(SortToolsError):
    """Control signal: destination exists and the strategy is ``skip``."""

    def __init__(self, destination: PathLike):
        self.destination = Path(destination)
        super().__init__(f"File already exists and was skipped: {destination}")


class TooManyConflictsError(SortToolsError):
    """No free ``name(n).ext`` slot was found within the probe limit."""


class ScanLimitExceeded(SortToolsError):
    """A directory holds more files than one run is allowed to process."""


class OracleError(SortToolsError):
    """Typed failure raised by a classification oracle.

    Oracles that know why a call failed raise this with the matching kind so
    the scheduler never has to guess from the message text.
    """

    def __init__(self, kind: ErrorKind, message: str):
        self.kind = ErrorKind(kind)
        super().__init__(message)


class ClassificationError(SortToolsError):
    """A file could not be classified."""

    def __init__(
        self,
        path: PathLike,
        kind: ErrorKind,
        message: str,
        original: Optional[BaseException] = None,
    ):
        self.path = Path(path)
        self.kind = kind
        self.original = original
        super().__init__(message)


class UnknownSessionError(SortToolsError, KeyError):
    """No journal session with the given id."""

    def __str__(self) -> str:
        return f"Session not found: {self.args[0]}" if self.args else "Session not found"


class AlreadyRolledBackError(SortToolsError):
    """The session was rolled back before and cannot be touched again."""


class JournalFormatError(SortToolsError):
    """The journal file has an unsupported version or is malformed."""
