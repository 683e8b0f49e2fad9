"""
File organizer for placing classified files into category folders.

Handles the actual file operations: destination containment checks,
dry-run previews, conflict resolution and journaling for rollback.
"""

import logging
import os
import shutil
import threading
from contextlib import nullcontext
from pathlib import Path
from typing import ContextManager, Iterable, List, Optional, Union

from ..core.errors import ConflictSkip, SecurityViolation
from ..core.types import ClassificationResult, ConflictStrategy, OperationOutcome
from .conflict import ConflictResolver
from .transaction import CreateDirectoryRecord, MoveRecord, OperationJournal

logger = logging.getLogger(__name__)


class FileOrganizer:
    """Move classified files into ``base_dir/category[/subcategory]``."""

    def __init__(
        self,
        resolver: Optional[ConflictResolver] = None,
        journal: Optional[OperationJournal] = None,
    ):
        """
        Initialize file organizer.

        Args:
            resolver: Conflict resolver (default: one without an ask handler)
            journal: Journal receiving move and directory records
        """
        self.resolver = resolver or ConflictResolver()
        self.journal = journal
        # Serializes live placements so journal order matches mutation order
        self._lock = threading.Lock()

    def destination_for(
        self, base_dir: Union[str, Path], result: ClassificationResult
    ) -> Path:
        """
        Compute where ``result`` belongs, before conflict resolution.

        Raises:
            SecurityViolation: The category folder escapes ``base_dir``
        """
        base = os.path.normpath(os.path.abspath(base_dir))
        parts = [base, result.category]
        if result.subcategory:
            parts.append(result.subcategory)
        category_dir = os.path.normpath(os.path.join(*parts))

        try:
            contained = os.path.commonpath([base, category_dir]) == base
        except ValueError:
            contained = False
        if not contained:
            raise SecurityViolation(
                f"Attempted to create directory outside of base directory: {category_dir}"
            )

        return Path(category_dir) / result.path.name

    def place(
        self,
        base_dir: Union[str, Path],
        result: ClassificationResult,
        strategy: ConflictStrategy = ConflictStrategy.RENAME,
        dry_run: bool = False,
        session_id: Optional[str] = None,
    ) -> OperationOutcome:
        """
        Place one classified file.

        Args:
            base_dir: Root of the category folders
            result: Classification of the file to move
            strategy: How to handle an existing destination
            dry_run: Only compute the destination
            session_id: Journal session receiving the records

        Returns:
            Outcome of the placement; errors are reported, never raised
        """
        source = Path(result.path)

        try:
            destination = self.destination_for(base_dir, result)
        except SecurityViolation as e:
            logger.error(f"Security violation for {source}: {e}")
            return OperationOutcome.failure(source, f"SecurityViolation: {e}")

        if dry_run:
            logger.info(f"[DRY RUN] Would move {source} -> {destination}")
            return OperationOutcome(
                success=True, source_path=source, destination_path=destination
            )

        try:
            with self._lock, self._session_guard(session_id):
                self._make_directories(destination.parent, session_id)
                final = self.resolver.resolve(source, destination, strategy)
                shutil.move(str(source), str(final))
                if session_id is not None:
                    self.journal.record(
                        session_id, MoveRecord(source_path=source, destination_path=final)
                    )
        except ConflictSkip as e:
            logger.info(str(e))
            return OperationOutcome(
                success=True,
                source_path=source,
                destination_path=e.destination,
                skipped=True,
            )
        except Exception as e:
            logger.error(f"Failed to move {source}: {e}")
            return OperationOutcome.failure(source, str(e), destination_path=destination)

        logger.debug(f"Moved {source} -> {final}")
        return OperationOutcome(success=True, source_path=source, destination_path=final)

    def organize(
        self,
        base_dir: Union[str, Path],
        results: Iterable[ClassificationResult],
        strategy: ConflictStrategy = ConflictStrategy.RENAME,
        dry_run: bool = False,
        session_id: Optional[str] = None,
    ) -> List[OperationOutcome]:
        """Place several files; outcomes follow the input order."""
        outcomes = [
            self.place(base_dir, result, strategy, dry_run=dry_run, session_id=session_id)
            for result in results
        ]

        moved = sum(1 for o in outcomes if o.success and not o.skipped)
        failed = sum(1 for o in outcomes if not o.success)
        logger.info(
            f"Organized {len(outcomes)} files: {moved} moved, "
            f"{len(outcomes) - moved - failed} skipped, {failed} failed"
        )
        return outcomes

    def _session_guard(self, session_id: Optional[str]) -> ContextManager:
        if session_id is None:
            return nullcontext()
        if self.journal is None:
            raise ValueError("A session id was given but the organizer has no journal")
        return self.journal.locked(session_id)

    def _make_directories(self, directory: Path, session_id: Optional[str]) -> None:
        """Create ``directory`` and missing parents, journaling each one made here."""
        missing = []
        current = directory
        while not current.exists():
            missing.append(current)
            if current.parent == current:
                break
            current = current.parent

        for path in reversed(missing):
            try:
                os.mkdir(path)
            except FileExistsError:
                continue
            logger.debug(f"Created directory {path}")
            if session_id is not None:
                self.journal.record(session_id, CreateDirectoryRecord(directory_path=path))
