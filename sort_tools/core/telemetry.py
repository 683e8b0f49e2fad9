"""
Diagnostic capture for unclassifiable failures.

When the scheduler cannot map an error to a known kind it hands the exception
to a telemetry collaborator. ``TelemetryService`` writes one JSON report per
error so the failure can be investigated after the run.
"""

import json
import logging
import os
import platform as platform_info
import traceback
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field

from ..version import get_version_string

logger = logging.getLogger(__name__)


class UnknownErrorReporter(Protocol):
    """Anything that can receive unknown-error reports."""

    def report_unknown_error(
        self,
        error: BaseException,
        path: Path,
        context: Optional[Dict[str, Any]] = None,
    ) -> None: ...


class SystemInfo(BaseModel):
    platform: str = Field(default_factory=platform_info.platform)
    python_version: str = Field(default_factory=platform_info.python_version)
    arch: str = Field(default_factory=platform_info.machine)
    pid: int = Field(default_factory=os.getpid)
    app_version: str = Field(default_factory=get_version_string)


class UnknownErrorReport(BaseModel):
    """Full context captured for an unknown error."""

    id: str
    timestamp: datetime = Field(default_factory=datetime.now)
    file_path: str
    message: str
    error_type: str
    stack: Optional[str] = None
    system: SystemInfo = Field(default_factory=SystemInfo)
    context: Dict[str, Any] = Field(default_factory=dict)


class TelemetryService:
    """Stores unknown-error reports as JSON files under ``report_dir``."""

    def __init__(self, report_dir: Path):
        self.report_dir = Path(report_dir)

    def _report_path(self, report_id: str) -> Path:
        return self.report_dir / f"{report_id}.json"

    def report_unknown_error(
        self,
        error: BaseException,
        path: Path,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Persist a report; failures here are logged and never propagate."""
        report_id = f"error_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"

        try:
            stack = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
            report = UnknownErrorReport(
                id=report_id,
                file_path=str(path),
                message=str(error),
                error_type=type(error).__name__,
                stack=stack or None,
                context=context or {},
            )
            payload = report.model_dump(mode="json")

            self.report_dir.mkdir(parents=True, exist_ok=True)
            with open(self._report_path(report_id), "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, default=str)
        except Exception as e:
            logger.error(f"Failed to save unknown-error report for {path}: {e}")
            return

        logger.error(
            f"Unknown error while classifying {path} ({report.error_type}: "
            f"{report.message}); report saved to {self._report_path(report_id)}"
        )

    def get_unknown_errors(self) -> List[UnknownErrorReport]:
        """Load every stored report, newest first."""
        if not self.report_dir.exists():
            return []

        reports: List[UnknownErrorReport] = []
        for report_file in self.report_dir.glob("*.json"):
            try:
                with open(report_file, "r", encoding="utf-8") as f:
                    reports.append(UnknownErrorReport.model_validate(json.load(f)))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable telemetry report {report_file}: {e}")

        return sorted(reports, key=lambda r: r.timestamp, reverse=True)

    def clear_old_reports(self, days_to_keep: int = 30) -> int:
        """Delete reports older than ``days_to_keep`` days.

        Returns:
            Number of reports deleted
        """
        cutoff = datetime.now() - timedelta(days=days_to_keep)
        deleted = 0

        for report in self.get_unknown_errors():
            if report.timestamp < cutoff:
                try:
                    self._report_path(report.id).unlink()
                    deleted += 1
                except OSError as e:
                    logger.warning(f"Failed to delete telemetry report {report.id}: {e}")

        if deleted:
            logger.info(f"Cleaned up {deleted} telemetry reports older than {days_to_keep} days")
        return deleted
