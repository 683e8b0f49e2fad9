"""
Persistent cache of classification results.

Entries are keyed by ``(path, fingerprint)``. A lookup only hits when the
stored fingerprint equals the current one; a changed file simply misses and
its new verdict is stored next to the old row.

Example:
    >>> cache = ResultCache(Path("~/.sort-tools/cache.db").expanduser())
    >>> hit = cache.lookup(path, fingerprint)
    >>> if hit is None:
    ...     cache.store(result)
"""

import logging
import threading
from pathlib import Path
from typing import Any, Optional, Union

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ..core.types import ClassificationResult
from .models import Base, Categorization

logger = logging.getLogger(__name__)


def _database_url(location: Union[str, Path, None]) -> str:
    if location is None or str(location) == ":memory:":
        return "sqlite://"
    text = str(location)
    if "://" in text:
        return text
    return f"sqlite:///{Path(text).expanduser()}"


class ResultCache:
    """SQLite-backed store of oracle verdicts.

    Safe to share between worker threads; every operation runs under one lock
    so an in-memory database can be used from the scheduler pool.

    Args:
        location: SQLite file path, SQLAlchemy URL, or None / ``":memory:"``
            for a process-local cache
    """

    def __init__(self, location: Union[str, Path, None] = None):
        url = _database_url(location)

        if url.startswith("sqlite:///"):
            Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

        engine_kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url == "sqlite://":
            # One shared connection, otherwise every thread sees an empty DB
            engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(url, **engine_kwargs)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._lock = threading.Lock()

        Base.metadata.create_all(bind=self.engine)
        logger.debug(f"Result cache ready at {url}")

    def __enter__(self) -> "ResultCache":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def lookup(
        self, path: Union[str, Path], fingerprint: Optional[str]
    ) -> Optional[ClassificationResult]:
        """
        Return the cached result for ``path`` at ``fingerprint``.

        Args:
            path: Absolute file path
            fingerprint: Current content fingerprint

        Returns:
            Cached result, or None on a miss (including a missing fingerprint)
        """
        if not fingerprint:
            return None

        with self._lock, self._session_factory() as session:
            row = session.get(Categorization, (str(path), fingerprint))
            if row is None:
                return None

            return ClassificationResult(
                path=Path(row.file_path),
                category=row.category,
                subcategory=row.subcategory,
                fingerprint=row.fingerprint,
            )

    def store(self, result: ClassificationResult) -> None:
        """
        Save ``result`` under its ``(path, fingerprint)`` key.

        Results without a fingerprint are not cached.
        """
        if not result.fingerprint:
            logger.debug(f"Skipping cache (no fingerprint): {result.path}")
            return

        with self._lock, self._session_factory() as session:
            session.merge(
                Categorization(
                    file_path=str(result.path),
                    fingerprint=result.fingerprint,
                    category=result.category,
                    subcategory=result.subcategory,
                )
            )
            session.commit()

    def count(self) -> int:
        """Number of cached entries."""
        with self._lock, self._session_factory() as session:
            return session.scalar(select(func.count()).select_from(Categorization)) or 0

    def purge_path(self, path: Union[str, Path]) -> int:
        """
        Drop every cached fingerprint for ``path``.

        Returns:
            Number of entries removed
        """
        with self._lock, self._session_factory() as session:
            outcome = session.execute(
                delete(Categorization).where(Categorization.file_path == str(path))
            )
            session.commit()
            removed = outcome.rowcount or 0

        if removed:
            logger.info(f"Purged {removed} cache entries for {path}")
        return removed

    def close(self) -> None:
        self.engine.dispose()
        logger.debug("Closed result cache")
