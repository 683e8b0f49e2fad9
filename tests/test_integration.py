"""End-to-end runs through scanner, cache, oracle, organizer and journal."""

import pytest

from sort_tools.cache import ResultCache
from sort_tools.classification import ClassificationScheduler
from sort_tools.core import MetricsCollector, OracleError, TelemetryService
from sort_tools.core.types import ErrorKind
from sort_tools.organization import JsonJournalStore, OperationJournal

pytestmark = pytest.mark.integration


def _build(oracle, settings):
    cache = ResultCache(settings.cache_path)
    journal = OperationJournal(JsonJournalStore(settings.history_path))
    journal.restore()
    scheduler = ClassificationScheduler(
        oracle=oracle,
        cache=cache,
        journal=journal,
        settings=settings,
        metrics=MetricsCollector(),
        telemetry=TelemetryService(settings.telemetry_dir),
        sleep=lambda seconds: None,
    )
    return scheduler, cache


class TestFullPipeline:
    """Organize, reload from disk, roll back."""

    def test_organize_then_rollback_from_fresh_journal(self, oracle, settings, make_files):
        inbox_files = make_files("invoice.pdf", "cat.jpg", "notes.txt")
        inbox = inbox_files[0].parent
        oracle.side_effects["cat.jpg"] = [{"category": "Images", "subcategory": "Pets"}]

        scheduler, cache = _build(oracle, settings)
        report = scheduler.organize_directory(inbox)
        cache.close()

        assert report.moved == 3
        assert (inbox / "Images" / "Pets" / "cat.jpg").exists()

        # A new journal instance sees the persisted session
        journal = OperationJournal(JsonJournalStore(settings.history_path))
        journal.restore()
        latest = journal.latest_session()
        assert latest.session_id == report.session_id

        result = journal.rollback(report.session_id)
        journal.persist()

        assert result.success is True
        assert sorted(p.name for p in inbox.iterdir()) == ["cat.jpg", "invoice.pdf", "notes.txt"]

        reloaded = OperationJournal(JsonJournalStore(settings.history_path))
        reloaded.restore()
        assert reloaded.get_session(report.session_id).rolled_back is True

    def test_cache_survives_restart(self, oracle, settings, inbox):
        scheduler, cache = _build(oracle, settings)
        scheduler.classify_all(inbox)
        cache.close()

        scheduler, cache = _build(oracle, settings)
        results = scheduler.classify_all(inbox)
        cache.close()

        assert len(results) == 3
        assert len(oracle.calls) == 3

    def test_failures_reported_and_diagnosed(self, oracle, settings, inbox):
        oracle.side_effects["a.txt"] = [RuntimeError("unexpected reply shape")]
        oracle.side_effects["b.txt"] = [TimeoutError()] * 3
        oracle.side_effects["c.txt"] = [OracleError(ErrorKind.API_LIMIT, "quota")]
        failures = []

        scheduler, cache = _build(oracle, settings)
        report = scheduler.organize_directory(inbox, on_failure=failures.append)
        cache.close()

        assert report.moved == 0
        assert {f.path.name: f.kind for f in failures} == {
            "a.txt": ErrorKind.UNKNOWN,
            "b.txt": ErrorKind.NETWORK,
            "c.txt": ErrorKind.API_LIMIT,
        }
        reports = TelemetryService(settings.telemetry_dir).get_unknown_errors()
        assert [r.file_path for r in reports] == [str(inbox.resolve() / "a.txt")]
        assert sorted(p.name for p in inbox.iterdir()) == ["a.txt", "b.txt", "c.txt"]
