"""
File organization for sort-tools.

Places classified files into category folders with conflict handling and a
session journal that supports rollback.
"""

from .conflict import MAX_RENAME_PROBES, ConflictResolver
from .file_organizer import FileOrganizer
from .transaction import (
    CreateDirectoryRecord,
    JsonJournalStore,
    JournalStore,
    MemoryJournalStore,
    MoveRecord,
    OperationJournal,
    RollbackResult,
    Session,
)

__all__ = [
    "MAX_RENAME_PROBES",
    "ConflictResolver",
    "FileOrganizer",
    "CreateDirectoryRecord",
    "JsonJournalStore",
    "JournalStore",
    "MemoryJournalStore",
    "MoveRecord",
    "OperationJournal",
    "RollbackResult",
    "Session",
]
