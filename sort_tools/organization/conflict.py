"""
Conflict resolution for destinations that already exist.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from ..core.errors import ConflictSkip, TooManyConflictsError
from ..core.types import ConflictStrategy

logger = logging.getLogger(__name__)

# Highest n tried for name(n).ext before giving up
MAX_RENAME_PROBES = 1000

AskHandler = Callable[[Path, Path], Path]


class ConflictResolver:
    """Pick the final destination when the intended one is taken.

    Args:
        ask_handler: Callable used for ``ConflictStrategy.ASK``. It receives
            ``(source, destination)`` and returns the path to use, or raises
            ``ConflictSkip``. Without one, ``ASK`` is not available.
    """

    def __init__(self, ask_handler: Optional[AskHandler] = None):
        self.ask_handler = ask_handler

    def resolve(
        self,
        source: Union[str, Path],
        destination: Union[str, Path],
        strategy: ConflictStrategy,
    ) -> Path:
        """
        Resolve a potential conflict at ``destination``.

        Args:
            source: File being moved
            destination: Intended destination
            strategy: Conflict strategy

        Returns:
            Destination to move to

        Raises:
            ConflictSkip: Destination exists and strategy is ``skip``
            TooManyConflictsError: No free ``name(n)`` slot was found
            NotImplementedError: ``ask`` without an ask handler
        """
        source = Path(source)
        destination = Path(destination)

        if not destination.exists():
            return destination

        strategy = ConflictStrategy(strategy)
        logger.info(
            f"File conflict detected: {source} -> {destination} (strategy: {strategy.value})"
        )

        if strategy == ConflictStrategy.SKIP:
            raise ConflictSkip(destination)

        elif strategy == ConflictStrategy.OVERWRITE:
            logger.warning(f"Overwriting existing file: {destination}")
            return destination

        elif strategy == ConflictStrategy.RENAME:
            return self.find_available_name(destination)

        elif strategy == ConflictStrategy.ASK:
            if self.ask_handler is None:
                raise NotImplementedError(
                    "Interactive conflict resolution requires an ask handler"
                )
            return Path(self.ask_handler(source, destination))

        raise ValueError(f"Unknown conflict strategy: {strategy}")  # pragma: no cover

    def find_available_name(self, target_path: Path) -> Path:
        """
        Find a free name by appending ``(1)``, ``(2)``, ... to the stem.

        Example: document.pdf -> document(1).pdf -> document(2).pdf
        """
        stem = target_path.stem
        suffix = target_path.suffix
        parent = target_path.parent

        for counter in range(1, MAX_RENAME_PROBES + 1):
            new_path = parent / f"{stem}({counter}){suffix}"
            if not new_path.exists():
                logger.info(f"Resolved conflict with rename: {target_path} -> {new_path}")
                return new_path

        raise TooManyConflictsError(f"Too many file conflicts for {target_path}")
