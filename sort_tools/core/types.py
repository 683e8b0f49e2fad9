"""
Type definitions shared across the sorting pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import BaseModel, Field, field_validator


class ErrorKind(str, Enum):
    """Classification of a failed oracle call."""

    NETWORK = "network"
    API_LIMIT = "api_limit"
    AUTH = "auth"
    API_ERROR = "api_error"
    INVALID_FILE = "invalid_file"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        """Only transient network failures are worth another attempt."""
        return self is ErrorKind.NETWORK


class ConflictStrategy(str, Enum):
    """How to handle a destination that already exists."""

    SKIP = "skip"
    OVERWRITE = "overwrite"
    RENAME = "rename"  # file(1).txt, file(2).txt, ...
    ASK = "ask"


def _default_fingerprint(path: Path) -> str:
    from ..shared.file_utils import compute_fingerprint

    return compute_fingerprint(path)


@dataclass(frozen=True)
class WorkItem:
    """A file waiting to be classified.

    The fingerprint is computed on first access and then reused, so the
    hashing cost is only paid when the scheduler actually needs it.
    """

    path: Path
    hasher: Callable[[Path], str] = field(
        default=_default_fingerprint, compare=False, repr=False
    )

    @cached_property
    def fingerprint(self) -> str:
        return self.hasher(self.path)


class ClassificationResult(BaseModel):
    """Category assigned to a single file."""

    path: Path = Field(description="Absolute path of the classified file")
    category: str = Field(description="Main category folder name")
    subcategory: Optional[str] = Field(
        default=None, description="Optional nested folder name"
    )
    fingerprint: Optional[str] = Field(
        default=None, description="Content fingerprint used as cache key"
    )

    @field_validator("category")
    @classmethod
    def _category_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("category must be a non-empty string")
        return value

    @field_validator("subcategory")
    @classmethod
    def _blank_subcategory_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class OperationOutcome(BaseModel):
    """Result of placing one file into its category folder."""

    success: bool
    source_path: Path
    destination_path: Optional[Path] = None
    skipped: bool = False
    error: Optional[str] = None

    @classmethod
    def failure(
        cls,
        source_path: Path,
        error: str,
        destination_path: Optional[Path] = None,
    ) -> "OperationOutcome":
        return cls(
            success=False,
            source_path=source_path,
            destination_path=destination_path,
            error=error,
        )


class ItemFailure(BaseModel):
    """A work item that was dropped from the result set."""

    path: Path
    kind: ErrorKind
    message: str
    attempts: int = 0


class OrganizeReport(BaseModel):
    """Summary of a classify-and-move run."""

    session_id: Optional[str] = None
    dry_run: bool = False
    results: List[ClassificationResult] = Field(default_factory=list)
    outcomes: List[OperationOutcome] = Field(default_factory=list)
    failures: List[ItemFailure] = Field(default_factory=list)

    @property
    def moved(self) -> int:
        return sum(1 for o in self.outcomes if o.success and not o.skipped)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped)

    @property
    def failed(self) -> int:
        return len(self.failures) + sum(1 for o in self.outcomes if not o.success)
