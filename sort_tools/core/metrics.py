"""
Run metrics for classification passes.

The collector is handed to the scheduler explicitly; there is no module-level
instance, so two runs in the same process never share counters.
"""

import logging
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Generator, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class OperationStats(BaseModel):
    """Timing statistics for a single operation type."""

    operation_name: str
    total_time_seconds: float = 0.0
    call_count: int = 0
    errors: int = 0
    min_time_seconds: Optional[float] = None
    max_time_seconds: Optional[float] = None

    @property
    def average_time_seconds(self) -> float:
        if self.call_count == 0:
            return 0.0
        return self.total_time_seconds / self.call_count

    def record_execution(self, duration_seconds: float, error: bool = False) -> None:
        """Record an operation execution."""
        self.total_time_seconds += duration_seconds
        self.call_count += 1

        if error:
            self.errors += 1

        if self.min_time_seconds is None or duration_seconds < self.min_time_seconds:
            self.min_time_seconds = duration_seconds
        if self.max_time_seconds is None or duration_seconds > self.max_time_seconds:
            self.max_time_seconds = duration_seconds


class RunMetrics(BaseModel):
    """Counters for one classification run."""

    total_files: int = 0
    success_count: int = 0
    failure_count: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    skipped_files: int = 0
    cancelled_files: int = 0

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    errors_by_type: Dict[str, int] = Field(default_factory=dict)
    operations: Dict[str, OperationStats] = Field(default_factory=dict)

    @property
    def average_seconds_per_file(self) -> Optional[float]:
        if self.total_files == 0 or self.completed_at is None:
            return None
        return self.duration_seconds / self.total_files

    @property
    def cache_hit_rate(self) -> Optional[float]:
        """Percentage of successful results served from the cache."""
        categorized = self.cache_hits + self.cache_misses
        if categorized == 0:
            return None
        return self.cache_hits / categorized * 100

    def get_summary_report(self) -> str:
        """Get human-readable summary report."""
        lines = [
            "=== Classification Summary ===",
            f"Total Files: {self.total_files}",
            f"Successful: {self.success_count}",
            f"Failed: {self.failure_count}",
            f"Skipped: {self.skipped_files}",
            f"Cache Hits: {self.cache_hits}",
            f"Oracle Calls: {self.cache_misses}",
        ]
        if self.cache_hit_rate is not None:
            lines.append(f"Cache Hit Rate: {self.cache_hit_rate:.1f}%")
        if self.completed_at is not None:
            lines.append(f"Duration: {self.duration_seconds:.2f}s")

        if self.errors_by_type:
            lines.append("")
            lines.append("Error Breakdown:")
            for error_type, count in sorted(
                self.errors_by_type.items(), key=lambda x: x[1], reverse=True
            ):
                lines.append(f"  {error_type}: {count}")

        return "\n".join(lines)


class MetricsCollector:
    """Thread-safe collector feeding a ``RunMetrics`` instance."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.metrics = RunMetrics()

    def start(self) -> None:
        with self._lock:
            self.metrics.started_at = datetime.now()
        logger.debug("Started metrics collection")

    def record_success(self, from_cache: bool) -> None:
        with self._lock:
            self.metrics.total_files += 1
            self.metrics.success_count += 1
            if from_cache:
                self.metrics.cache_hits += 1
            else:
                self.metrics.cache_misses += 1

    def record_failure(self, error_type: str) -> None:
        with self._lock:
            self.metrics.total_files += 1
            self.metrics.failure_count += 1
            self.metrics.errors_by_type[error_type] = (
                self.metrics.errors_by_type.get(error_type, 0) + 1
            )

    def record_skip(self) -> None:
        with self._lock:
            self.metrics.skipped_files += 1

    def record_cancelled(self) -> None:
        with self._lock:
            self.metrics.cancelled_files += 1

    @contextmanager
    def track_operation(self, operation_name: str) -> Generator[None, None, None]:
        """Context manager to time an operation such as hashing or an oracle call."""
        start_time = time.monotonic()
        error_occurred = False

        try:
            yield
        except Exception:
            error_occurred = True
            raise
        finally:
            duration = time.monotonic() - start_time
            with self._lock:
                stats = self.metrics.operations.setdefault(
                    operation_name, OperationStats(operation_name=operation_name)
                )
                stats.record_execution(duration, error_occurred)

    def finish(self) -> RunMetrics:
        """Stamp the end time and return a snapshot."""
        with self._lock:
            self.metrics.completed_at = datetime.now()
            if self.metrics.started_at:
                self.metrics.duration_seconds = (
                    self.metrics.completed_at - self.metrics.started_at
                ).total_seconds()
            snapshot = self.metrics.model_copy(deep=True)

        logger.info(
            f"Run finished: {snapshot.success_count} ok, "
            f"{snapshot.failure_count} failed, {snapshot.cache_hits} from cache"
        )
        return snapshot

    def snapshot(self) -> RunMetrics:
        with self._lock:
            return self.metrics.model_copy(deep=True)

    def as_dict(self) -> Dict[str, Any]:
        return self.snapshot().model_dump(mode="json")

    def reset(self) -> None:
        with self._lock:
            self.metrics = RunMetrics()
