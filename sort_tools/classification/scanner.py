"""
Directory scanning for classification runs.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..core.errors import ScanLimitExceeded
from ..core.types import WorkItem
from ..shared.file_utils import compute_fingerprint, is_safe_filename

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 10000


class DirectoryScanner:
    """Collect the regular files directly inside a directory.

    Only regular files are collected; hidden entries and names with unsafe
    characters are skipped. Scanning is not recursive.
    """

    def __init__(
        self,
        max_files: int = DEFAULT_MAX_FILES,
        hasher: Callable[[Path], str] = compute_fingerprint,
    ):
        self.max_files = max_files
        self.hasher = hasher

    def scan(self, directory: Union[str, Path]) -> List[WorkItem]:
        """
        Scan ``directory`` for files to classify.

        Args:
            directory: Directory to scan

        Returns:
            One work item per eligible file, sorted by name

        Raises:
            OSError: The directory cannot be listed
            ScanLimitExceeded: More than ``max_files`` eligible files
        """
        root = Path(directory).resolve()
        logger.info(f"Scanning {root}")

        items: List[WorkItem] = []
        for entry in sorted(root.iterdir()):
            name = entry.name

            if name.startswith("."):
                logger.debug(f"Skipping hidden entry: {name}")
                continue

            if not is_safe_filename(name):
                logger.warning(f"Skipping file with unsafe characters: {name!r}")
                continue

            if not entry.is_file():
                continue

            items.append(WorkItem(path=entry, hasher=self.hasher))
            if len(items) > self.max_files:
                raise ScanLimitExceeded(
                    f"Directory contains too many files (max: {self.max_files}). "
                    "Consider organizing files in smaller batches."
                )

        logger.info(f"Found {len(items)} files in {root}")
        return items


def scan_directory(
    directory: Union[str, Path], max_files: Optional[int] = None
) -> List[WorkItem]:
    """Scan ``directory`` with a default ``DirectoryScanner``."""
    return DirectoryScanner(max_files=max_files or DEFAULT_MAX_FILES).scan(directory)
