"""
Classification scheduler.

Runs files through hash, cache lookup and oracle call on a bounded thread
pool, retrying transient network failures with linear backoff, and
optionally places each classified file with the organizer as soon as its
category is known.

Example:
    >>> scheduler = ClassificationScheduler(
    ...     oracle=my_oracle,
    ...     cache=ResultCache(settings.cache_path),
    ...     journal=OperationJournal(JsonJournalStore(settings.history_path)),
    ...     settings=settings,
    ... )
    >>> report = scheduler.organize_directory("/home/me/Downloads")
    >>> scheduler.journal.rollback(report.session_id)
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from ..cache.result_cache import ResultCache
from ..core.config import Settings
from ..core.errors import ClassificationError
from ..core.metrics import MetricsCollector
from ..core.telemetry import UnknownErrorReporter
from ..core.types import (
    ClassificationResult,
    ConflictStrategy,
    ErrorKind,
    ItemFailure,
    OperationOutcome,
    OrganizeReport,
    WorkItem,
)
from ..organization.file_organizer import FileOrganizer
from ..organization.transaction import OperationJournal
from ..shared.file_utils import compute_fingerprint
from ..shared.path_guard import PathGuard
from .classifier import ErrorClassifier, classify_error, describe_error
from .oracle import ClassificationOptions, ClassificationOracle, to_verdict
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)

FailureCallback = Callable[[ItemFailure], None]


@dataclass
class _Placement:
    base_dir: str
    strategy: ConflictStrategy
    dry_run: bool
    session_id: Optional[str]
    use_subcategories: bool


@dataclass
class _ItemOutcome:
    item: WorkItem
    result: Optional[ClassificationResult] = None
    failure: Optional[ItemFailure] = None
    outcome: Optional[OperationOutcome] = None
    cancelled: bool = False


class ClassificationScheduler:
    """Classify many files concurrently and optionally organize them."""

    def __init__(
        self,
        oracle: ClassificationOracle,
        cache: Optional[ResultCache] = None,
        organizer: Optional[FileOrganizer] = None,
        journal: Optional[OperationJournal] = None,
        settings: Optional[Settings] = None,
        classifier: ErrorClassifier = classify_error,
        metrics: Optional[MetricsCollector] = None,
        telemetry: Optional[UnknownErrorReporter] = None,
        scanner: Optional[DirectoryScanner] = None,
        path_guard: Optional[PathGuard] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the scheduler.

        Args:
            oracle: External classifier
            cache: Result cache; without one every file goes to the oracle
            organizer: Mover used by ``organize_directory``
            journal: Journal for live organize runs (default: in-memory)
            settings: Concurrency, retry and scan limits
            classifier: Maps exceptions to ``ErrorKind``
            metrics: Collector receiving per-run counters
            telemetry: Receives errors classified as ``UNKNOWN``
            scanner: Directory scanner (default honors ``settings.max_files``)
            path_guard: Validates directories given to ``organize_directory``
            sleep: Backoff sleep, replaceable in tests
        """
        self.oracle = oracle
        self.cache = cache
        self.settings = settings or Settings()
        self.classifier = classifier
        self.metrics = metrics or MetricsCollector()
        self.telemetry = telemetry
        self.scanner = scanner or DirectoryScanner(max_files=self.settings.max_files)
        self.path_guard = path_guard or PathGuard()
        self._sleep = sleep
        self._abort = threading.Event()

        if journal is None:
            journal = (
                organizer.journal
                if organizer is not None and organizer.journal is not None
                else OperationJournal()
            )
        self.journal = journal
        self.organizer = organizer or FileOrganizer(journal=journal)

    def abort(self) -> None:
        """Stop admitting items; calls already in flight run to completion."""
        logger.warning("Abort requested, no further files will be classified")
        self._abort.set()

    @property
    def aborted(self) -> bool:
        return self._abort.is_set()

    def classify_all(
        self,
        directory: Union[str, Path],
        options: Optional[ClassificationOptions] = None,
        on_failure: Optional[FailureCallback] = None,
    ) -> List[ClassificationResult]:
        """
        Classify every file directly inside ``directory``.

        Args:
            directory: Directory to scan
            options: Forwarded to the oracle
            on_failure: Called once per dropped file, on the calling thread

        Returns:
            Results in completion order; failed files are not included
        """
        items = self.scanner.scan(directory)
        return self.classify_items(items, options=options, on_failure=on_failure)

    def classify_items(
        self,
        items: Iterable[Union[WorkItem, str, Path]],
        options: Optional[ClassificationOptions] = None,
        on_failure: Optional[FailureCallback] = None,
    ) -> List[ClassificationResult]:
        """Classify an explicit list of files; see ``classify_all``."""
        outcomes = self._run(self._as_work_items(items), options, on_failure)
        return [o.result for o in outcomes if o.result is not None]

    def classify_file(
        self,
        path: Union[WorkItem, str, Path],
        options: Optional[ClassificationOptions] = None,
    ) -> ClassificationResult:
        """
        Classify a single file on the calling thread.

        Raises:
            ClassificationError: The file was dropped; carries the error kind
        """
        item = self._as_work_items([path])[0]
        outcome = self._process(item, self._effective_options(options), None)
        if outcome.cancelled:
            raise ClassificationError(item.path, ErrorKind.UNKNOWN, "Scheduler was aborted")
        if outcome.failure is not None:
            raise ClassificationError(
                outcome.failure.path, outcome.failure.kind, outcome.failure.message
            )
        return outcome.result

    def organize_directory(
        self,
        directory: Union[str, Path],
        base_dir: Union[str, Path, None] = None,
        strategy: Optional[ConflictStrategy] = None,
        dry_run: bool = False,
        use_subcategories: Optional[bool] = None,
        options: Optional[ClassificationOptions] = None,
        on_failure: Optional[FailureCallback] = None,
    ) -> OrganizeReport:
        """
        Classify the files in ``directory`` and move them into category folders.

        Live runs are journaled in a new session which is ended and persisted
        when the run finishes, so the whole run can be rolled back.

        Args:
            directory: Directory whose files are organized
            base_dir: Root of the category folders (default: ``directory``)
            strategy: Conflict strategy (default from settings)
            dry_run: Compute destinations without touching the filesystem
            use_subcategories: Nest files in subcategory folders (default from settings)
            options: Forwarded to the oracle
            on_failure: Called once per file that could not be classified

        Returns:
            Report with results, per-file outcomes, failures and the session id

        Raises:
            InvalidPathError: ``directory`` or ``base_dir`` failed validation
        """
        source_dir = self.path_guard.validate(str(directory))
        target_dir = (
            self.path_guard.validate(str(base_dir)) if base_dir is not None else source_dir
        )
        placement = _Placement(
            base_dir=target_dir,
            strategy=ConflictStrategy(strategy or self.settings.conflict_strategy),
            dry_run=dry_run,
            session_id=None,
            use_subcategories=(
                self.settings.use_subcategories
                if use_subcategories is None
                else use_subcategories
            ),
        )

        items = self.scanner.scan(source_dir)

        if not dry_run:
            placement.session_id = self.journal.start_session()

        try:
            outcomes = self._run(items, options, on_failure, placement)
        finally:
            if placement.session_id is not None:
                self.journal.end_session(placement.session_id)
                self.journal.persist()

        report = OrganizeReport(
            session_id=placement.session_id,
            dry_run=dry_run,
            results=[o.result for o in outcomes if o.result is not None],
            outcomes=[o.outcome for o in outcomes if o.outcome is not None],
            failures=[o.failure for o in outcomes if o.failure is not None],
        )

        prefix = "[DRY RUN] " if dry_run else ""
        logger.info(
            f"{prefix}Organized {source_dir}: {report.moved} moved, "
            f"{report.skipped} skipped, {report.failed} failed"
        )
        return report

    def _as_work_items(
        self, items: Iterable[Union[WorkItem, str, Path]]
    ) -> List[WorkItem]:
        hasher = getattr(self.scanner, "hasher", compute_fingerprint)
        return [
            item if isinstance(item, WorkItem) else WorkItem(path=Path(item), hasher=hasher)
            for item in items
        ]

    def _effective_options(
        self, options: Optional[ClassificationOptions]
    ) -> ClassificationOptions:
        options = options or ClassificationOptions()
        if options.timeout_seconds is None:
            options = options.model_copy(
                update={"timeout_seconds": self.settings.oracle_timeout_seconds}
            )
        return options

    def _run(
        self,
        items: List[WorkItem],
        options: Optional[ClassificationOptions],
        on_failure: Optional[FailureCallback],
        placement: Optional[_Placement] = None,
    ) -> List[_ItemOutcome]:
        options = self._effective_options(options)
        self._abort.clear()
        self.metrics.reset()
        self.metrics.start()

        concurrency = self.settings.concurrency
        logger.info(f"Classifying {len(items)} files with {concurrency} workers")

        outcomes: List[_ItemOutcome] = []
        with ThreadPoolExecutor(max_workers=concurrency) as executor:
            futures = {
                executor.submit(self._process, item, options, placement): item
                for item in items
            }

            for future in as_completed(futures):
                item_outcome = future.result()

                if item_outcome.cancelled:
                    self.metrics.record_cancelled()
                    logger.warning(f"Run aborted, not classifying {item_outcome.item.path}")
                    continue

                if item_outcome.failure is not None and on_failure is not None:
                    on_failure(item_outcome.failure)
                outcomes.append(item_outcome)

        metrics = self.metrics.finish()
        if metrics.cancelled_files:
            logger.warning(f"{metrics.cancelled_files} files were not classified after abort")
        return outcomes

    def _process(
        self,
        item: WorkItem,
        options: ClassificationOptions,
        placement: Optional[_Placement],
    ) -> _ItemOutcome:
        """Take one item through hash, cache, oracle and placement."""
        if self._abort.is_set():
            return _ItemOutcome(item=item, cancelled=True)

        try:
            with self.metrics.track_operation("hash"):
                fingerprint = item.fingerprint
        except OSError as e:
            return self._fail(item, ErrorKind.INVALID_FILE, e, attempts=0)

        result = self._lookup_cache(item, fingerprint)
        if result is not None:
            logger.debug(f"Cache hit for {item.path.name}: {result.category}")
            self.metrics.record_success(from_cache=True)
        else:
            result_or_failure = self._classify_with_retry(item, fingerprint, options)
            if isinstance(result_or_failure, _ItemOutcome):
                return result_or_failure
            result = result_or_failure
            self._store_cache(result)
            self.metrics.record_success(from_cache=False)

        outcome = None
        if placement is not None:
            target = (
                result
                if placement.use_subcategories
                else result.model_copy(update={"subcategory": None})
            )
            outcome = self.organizer.place(
                placement.base_dir,
                target,
                placement.strategy,
                dry_run=placement.dry_run,
                session_id=placement.session_id,
            )
            if outcome.skipped:
                self.metrics.record_skip()

        return _ItemOutcome(item=item, result=result, outcome=outcome)

    def _classify_with_retry(
        self, item: WorkItem, fingerprint: str, options: ClassificationOptions
    ) -> Union[ClassificationResult, _ItemOutcome]:
        max_attempts = self.settings.max_attempts
        attempt = 0

        while True:
            attempt += 1
            try:
                with self.metrics.track_operation("oracle"):
                    reply = self.oracle.classify(item.path, options)
                verdict = to_verdict(reply)
            except Exception as e:
                kind = self.classifier(e)

                if kind == ErrorKind.UNKNOWN and self.telemetry is not None:
                    try:
                        self.telemetry.report_unknown_error(
                            e,
                            item.path,
                            {
                                "attempt": attempt,
                                "max_attempts": max_attempts,
                                "has_cache": self.cache is not None,
                            },
                        )
                    except Exception:
                        logger.exception(
                            f"Telemetry failed to record unknown error for {item.path.name}"
                        )

                if kind.retryable and attempt < max_attempts:
                    delay = self.settings.retry_delay_seconds(attempt)
                    logger.warning(
                        f"{describe_error(kind, e)} for {item.path.name} "
                        f"(attempt {attempt}/{max_attempts}), retrying in {delay:.1f}s"
                    )
                    self._sleep(delay)
                    continue

                return self._fail(item, kind, e, attempts=attempt)

            return ClassificationResult(
                path=item.path,
                category=verdict.category,
                subcategory=verdict.subcategory,
                fingerprint=fingerprint,
            )

    def _lookup_cache(
        self, item: WorkItem, fingerprint: str
    ) -> Optional[ClassificationResult]:
        if self.cache is None:
            return None
        try:
            return self.cache.lookup(item.path, fingerprint)
        except SQLAlchemyError as e:
            logger.warning(f"Cache lookup failed for {item.path}, asking oracle: {e}")
            return None

    def _store_cache(self, result: ClassificationResult) -> None:
        if self.cache is None:
            return
        try:
            self.cache.store(result)
        except SQLAlchemyError as e:
            logger.warning(f"Could not cache result for {result.path}: {e}")

    def _fail(
        self, item: WorkItem, kind: ErrorKind, error: BaseException, attempts: int
    ) -> _ItemOutcome:
        message = describe_error(kind, error)
        logger.error(f"Failed to classify {item.path.name}: {message}")
        self.metrics.record_failure(kind.value)
        return _ItemOutcome(
            item=item,
            failure=ItemFailure(
                path=item.path, kind=kind, message=message, attempts=attempts
            ),
        )
