"""Tests for unknown-error telemetry."""

import json
import os
import platform
from datetime import datetime, timedelta
from pathlib import Path

from sort_tools.core.telemetry import SystemInfo, TelemetryService
from sort_tools.version import get_version_string


def _raise_and_catch() -> RuntimeError:
    try:
        raise RuntimeError("oracle returned gibberish")
    except RuntimeError as e:
        return e


class TestTelemetryService:
    """Tests for TelemetryService."""

    def test_report_written_and_loaded(self, tmp_path):
        """Test a report round-trips through the report directory."""
        service = TelemetryService(tmp_path / "telemetry")

        service.report_unknown_error(
            _raise_and_catch(), Path("/inbox/a.txt"), {"attempt": 1, "has_cache": True}
        )

        reports = service.get_unknown_errors()
        assert len(reports) == 1
        report = reports[0]
        assert report.file_path == "/inbox/a.txt"
        assert report.error_type == "RuntimeError"
        assert report.message == "oracle returned gibberish"
        assert report.context == {"attempt": 1, "has_cache": True}
        assert "RuntimeError" in report.stack
        assert report.system.python_version

    def test_one_file_per_report(self, tmp_path):
        """Test each call produces its own JSON file."""
        service = TelemetryService(tmp_path)

        service.report_unknown_error(ValueError("a"), Path("a"))
        service.report_unknown_error(ValueError("b"), Path("b"))

        assert len(list(tmp_path.glob("*.json"))) == 2

    def test_write_failure_does_not_raise(self, tmp_path):
        """Test an unusable report directory is logged, not raised."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        service = TelemetryService(blocker)

        service.report_unknown_error(RuntimeError("x"), Path("a"))

        assert blocker.is_file()

    def test_unserializable_context_does_not_raise(self, tmp_path):
        """Test a context value pydantic cannot dump is logged, not raised."""
        service = TelemetryService(tmp_path)

        service.report_unknown_error(RuntimeError("x"), Path("a"), {"obj": object()})

        assert service.get_unknown_errors() == []

    def test_missing_directory_has_no_reports(self, tmp_path):
        assert TelemetryService(tmp_path / "nothing").get_unknown_errors() == []

    def test_unreadable_report_skipped(self, tmp_path):
        """Test malformed files do not hide valid reports."""
        service = TelemetryService(tmp_path)
        (tmp_path / "broken.json").write_text("{not json")
        service.report_unknown_error(RuntimeError("x"), Path("a"))

        assert len(service.get_unknown_errors()) == 1

    def test_clear_old_reports(self, tmp_path):
        """Test reports past the retention window are deleted."""
        service = TelemetryService(tmp_path)
        service.report_unknown_error(RuntimeError("old"), Path("old"))
        service.report_unknown_error(RuntimeError("new"), Path("new"))

        old_file = next(
            f for f in tmp_path.glob("*.json") if json.loads(f.read_text())["message"] == "old"
        )
        data = json.loads(old_file.read_text())
        data["timestamp"] = (datetime.now() - timedelta(days=40)).isoformat()
        old_file.write_text(json.dumps(data))

        assert service.clear_old_reports(days_to_keep=30) == 1
        remaining = service.get_unknown_errors()
        assert [r.message for r in remaining] == ["new"]


class TestSystemInfo:
    """Tests for the host details stamped into reports."""

    def test_defaults_describe_running_host(self):
        info = SystemInfo()

        assert info.platform == platform.platform()
        assert info.python_version == platform.python_version()
        assert info.arch == platform.machine()
        assert info.pid == os.getpid()
        assert info.app_version == get_version_string()
