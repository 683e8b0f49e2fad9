"""
Operation journal for organize runs.

Every filesystem mutation made while organizing is appended to a session.
A session can later be rolled back as a unit: its records are replayed in
strict reverse order, moving files back and removing directories that the
run created and that are empty again.
"""

import json
import logging
import os
import shutil
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Annotated, Dict, Generator, List, Literal, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.errors import (
    AlreadyRolledBackError,
    JournalFormatError,
    UnknownSessionError,
)

logger = logging.getLogger(__name__)

JOURNAL_FORMAT_VERSION = "1.0"


class MoveRecord(BaseModel):
    """A file moved from ``source_path`` to ``destination_path``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["move"] = "move"
    source_path: Path = Field(description="Original file path")
    destination_path: Path = Field(description="Where the file was moved to")
    timestamp: datetime = Field(default_factory=datetime.now)


class CreateDirectoryRecord(BaseModel):
    """A directory created by the organizer."""

    model_config = ConfigDict(frozen=True)

    type: Literal["create_directory"] = "create_directory"
    directory_path: Path = Field(description="Created directory")
    timestamp: datetime = Field(default_factory=datetime.now)


OperationRecord = Annotated[
    Union[MoveRecord, CreateDirectoryRecord], Field(discriminator="type")
]


class Session(BaseModel):
    """A batch of operations that can be rolled back together."""

    session_id: str = Field(description="Unique session ID")
    started_at: datetime = Field(default_factory=datetime.now)
    ended_at: Optional[datetime] = Field(
        default=None, description="When the run finished"
    )
    operations: List[OperationRecord] = Field(default_factory=list)
    rolled_back: bool = False
    rolled_back_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()


class RollbackError(BaseModel):
    """One operation that could not be reverted."""

    operation: OperationRecord
    error: str


class RollbackResult(BaseModel):
    """Outcome of rolling back a session."""

    session_id: str
    success: bool = True
    operations_reverted: int = 0
    errors: List[RollbackError] = Field(default_factory=list)


class JournalDocument(BaseModel):
    """On-disk layout of the journal."""

    version: str = JOURNAL_FORMAT_VERSION
    saved_at: datetime = Field(default_factory=datetime.now)
    sessions: List[Session] = Field(default_factory=list)


class JournalStore(Protocol):
    """Persistence boundary for the journal."""

    def load(self) -> List[Session]: ...

    def save(self, sessions: List[Session]) -> None: ...


class MemoryJournalStore:
    """Keeps saved sessions in memory; used when no file is configured."""

    def __init__(self) -> None:
        self._sessions: List[Session] = []

    def load(self) -> List[Session]:
        return [s.model_copy(deep=True) for s in self._sessions]

    def save(self, sessions: List[Session]) -> None:
        self._sessions = [s.model_copy(deep=True) for s in sessions]


class JsonJournalStore:
    """Stores the journal as a single versioned JSON document."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> List[Session]:
        """
        Load sessions from disk.

        Returns:
            Stored sessions, or an empty list if the file does not exist

        Raises:
            JournalFormatError: Unknown version or malformed document
        """
        if not self.path.exists():
            logger.info(f"No history file at {self.path}, starting fresh")
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise JournalFormatError(f"History file is not valid JSON: {e}") from e

        version = data.get("version") if isinstance(data, dict) else None
        if version != JOURNAL_FORMAT_VERSION:
            raise JournalFormatError(f"Unsupported history file version: {version!r}")

        try:
            document = JournalDocument.model_validate(data)
        except ValidationError as e:
            raise JournalFormatError(f"Malformed history file: {e}") from e

        logger.info(f"Loaded {len(document.sessions)} sessions from {self.path}")
        return document.sessions

    def save(self, sessions: List[Session]) -> None:
        """Write all sessions, replacing the previous file atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = JournalDocument(sessions=sessions)

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(document.model_dump(mode="json"), f, indent=2)
        os.replace(tmp_path, self.path)

        logger.info(f"Saved {len(sessions)} sessions to {self.path}")


def generate_session_id() -> str:
    """Generate a unique session ID."""
    return f"session_{datetime.now().strftime('%Y%m%d-%H%M%S')}_{uuid.uuid4().hex[:6]}"


class OperationJournal:
    """Owns all sessions and serializes mutations per session.

    Appends and rollbacks on one session are linearized by that session's
    lock; different sessions never wait on each other.

    Example:
        >>> journal = OperationJournal(JsonJournalStore(settings.history_path))
        >>> journal.restore()
        >>> session_id = journal.start_session()
        >>> journal.record(session_id, MoveRecord(source_path=a, destination_path=b))
        >>> journal.end_session(session_id)
        >>> journal.persist()
        >>> journal.rollback(session_id).operations_reverted
        1
    """

    def __init__(self, store: Optional[JournalStore] = None):
        self.store: JournalStore = store if store is not None else MemoryJournalStore()
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def _lookup(self, session_id: str) -> tuple:
        with self._registry_lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise UnknownSessionError(session_id)
            return session, self._locks[session_id]

    @contextmanager
    def locked(self, session_id: str) -> Generator[Session, None, None]:
        """Hold the session's lock; the session must exist and be live."""
        session, lock = self._lookup(session_id)
        with lock:
            if session.rolled_back:
                raise AlreadyRolledBackError(f"Session already rolled back: {session_id}")
            yield session

    def start_session(self) -> str:
        """Open a new session and return its ID."""
        session_id = generate_session_id()
        with self._registry_lock:
            self._sessions[session_id] = Session(session_id=session_id)
            self._locks[session_id] = threading.RLock()

        logger.info(f"Started new operation session {session_id}")
        return session_id

    def record(self, session_id: str, operation: OperationRecord) -> None:
        """
        Append ``operation`` to a session.

        Raises:
            UnknownSessionError: No such session
            AlreadyRolledBackError: Session was rolled back
        """
        with self.locked(session_id) as session:
            session.operations.append(operation)
        logger.debug(f"Recorded {operation.type} in {session_id}")

    def end_session(self, session_id: str) -> None:
        """Mark a session as finished."""
        session, lock = self._lookup(session_id)
        with lock:
            session.ended_at = datetime.now()
            count = len(session.operations)
        logger.info(f"Ended operation session {session_id} ({count} operations)")

    def rollback(self, session_id: str) -> RollbackResult:
        """
        Revert every operation of a session, newest first.

        Reversal is not transactional: a failing operation is recorded in the
        result and the remaining ones are still attempted. The session is
        marked rolled back afterwards and cannot be rolled back again.

        Raises:
            UnknownSessionError: No such session
            AlreadyRolledBackError: Session was rolled back before
        """
        with self.locked(session_id) as session:
            logger.info(
                f"Rolling back session {session_id} ({len(session.operations)} operations)"
            )
            result = RollbackResult(session_id=session_id)

            for operation in reversed(session.operations):
                try:
                    self._revert(operation)
                    result.operations_reverted += 1
                except OSError as e:
                    logger.error(f"Failed to revert {operation.type} operation: {e}")
                    result.success = False
                    result.errors.append(RollbackError(operation=operation, error=str(e)))

            session.rolled_back = True
            session.rolled_back_at = datetime.now()

        logger.info(
            f"Rollback of {session_id} complete: {result.operations_reverted} reverted, "
            f"{len(result.errors)} errors"
        )
        return result

    def _revert(self, operation: OperationRecord) -> None:
        if isinstance(operation, MoveRecord):
            if not operation.destination_path.exists():
                raise FileNotFoundError(
                    f"Moved file no longer exists: {operation.destination_path}"
                )
            if operation.source_path.exists():
                raise FileExistsError(
                    f"Original location is occupied: {operation.source_path}"
                )
            shutil.move(str(operation.destination_path), str(operation.source_path))
            logger.debug(
                f"Moved back: {operation.destination_path} -> {operation.source_path}"
            )

        elif isinstance(operation, CreateDirectoryRecord):
            try:
                os.rmdir(operation.directory_path)
                logger.debug(f"Removed created directory {operation.directory_path}")
            except OSError:
                logger.debug(
                    f"Kept directory {operation.directory_path} (not empty or already gone)"
                )

    def get_session(self, session_id: str) -> Optional[Session]:
        """Return a copy of a session, or None if unknown."""
        try:
            session, lock = self._lookup(session_id)
        except UnknownSessionError:
            return None
        with lock:
            return session.model_copy(deep=True)

    def list_sessions(self) -> List[Session]:
        """Copies of all sessions, oldest first."""
        with self._registry_lock:
            ids = list(self._sessions)
        sessions = [s for s in (self.get_session(i) for i in ids) if s is not None]
        return sorted(sessions, key=lambda s: s.started_at)

    def latest_session(self, include_rolled_back: bool = False) -> Optional[Session]:
        """Most recently started session."""
        for session in reversed(self.list_sessions()):
            if include_rolled_back or not session.rolled_back:
                return session
        return None

    def prune(self, days: int = 30) -> int:
        """
        Forget finished sessions that started more than ``days`` days ago.

        Returns:
            Number of sessions removed
        """
        cutoff = datetime.now() - timedelta(days=days)
        with self._registry_lock:
            stale = [
                sid
                for sid, s in self._sessions.items()
                if s.ended_at is not None and s.started_at < cutoff
            ]
            for sid in stale:
                del self._sessions[sid]
                del self._locks[sid]

        if stale:
            logger.info(f"Pruned {len(stale)} sessions older than {days} days")
        return len(stale)

    def persist(self) -> None:
        """Save every session through the store."""
        self.store.save(self.list_sessions())

    def restore(self) -> None:
        """Replace in-memory sessions with the store's contents."""
        sessions = self.store.load()
        with self._registry_lock:
            self._sessions = {s.session_id: s for s in sessions}
            self._locks = {s.session_id: threading.RLock() for s in sessions}
        logger.info(f"Restored {len(sessions)} sessions")
