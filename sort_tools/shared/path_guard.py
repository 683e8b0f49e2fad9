"""
Sanitization of user-supplied paths.

Every directory handed to the pipeline by a front-end goes through
``PathGuard.validate`` before anything touches the filesystem.
"""

import logging
import os
import re
import sys
from typing import Optional

from ..core.errors import InvalidPathError

logger = logging.getLogger(__name__)

# Device names Windows reserves regardless of extension (case-insensitive)
WINDOWS_RESERVED_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)

# MAX_PATH without long path support
WINDOWS_MAX_PATH = 260

# Filename ceiling on common filesystems
MAX_FILENAME_LENGTH = 255

SHELL_METACHARACTERS = re.compile(r"[$`|;&]")
WINDOWS_INVALID_CHARS = re.compile(r'[<>:"|?*]')
CONTROL_CHARS = re.compile(r"[\x00-\x1f]")
DRIVE_LETTER = re.compile(r"^[A-Za-z]:$")


def _has_traversal(path: str) -> bool:
    return ".." in re.split(r"[\\/]", path)


class PathGuard:
    """Validate and normalize user-supplied paths.

    Args:
        windows: Apply Windows naming rules. Defaults to the running platform.
    """

    def __init__(self, windows: Optional[bool] = None):
        self.windows = sys.platform == "win32" if windows is None else windows

    def validate(self, raw_path: str) -> str:
        """
        Sanitize ``raw_path`` and return it as a normalized absolute path.

        Args:
            raw_path: Path as typed by the user

        Returns:
            Absolute path with duplicate separators and dot segments resolved

        Raises:
            InvalidPathError: On traversal sequences, shell metacharacters,
                over-long names or names the platform reserves
        """
        cleaned = raw_path.replace("\0", "")

        if _has_traversal(cleaned):
            raise InvalidPathError('Path traversal sequences ("../") are not allowed.')

        if SHELL_METACHARACTERS.search(cleaned):
            raise InvalidPathError(
                "Path contains dangerous shell characters (e.g., $, `, |, ;, &)."
            )

        resolved = os.path.abspath(cleaned)
        self._validate_platform_rules(resolved)

        logger.debug(f"Validated path {raw_path!r} -> {resolved}")
        return resolved

    def _validate_platform_rules(self, resolved: str) -> None:
        if self.windows and len(resolved) > WINDOWS_MAX_PATH:
            raise InvalidPathError(
                f"Path exceeds Windows MAX_PATH limit ({WINDOWS_MAX_PATH} characters): "
                f"{len(resolved)} characters"
            )

        for component in re.split(r"[\\/]", resolved):
            if not component:
                continue
            if self.windows and DRIVE_LETTER.match(component):
                continue
            self._validate_component(component)

    def _validate_component(self, name: str) -> None:
        if len(name) > MAX_FILENAME_LENGTH:
            raise InvalidPathError(
                f"Filename exceeds maximum length ({MAX_FILENAME_LENGTH} characters): {name}"
            )

        if self.windows:
            base_name = name.split(".")[0].upper()
            if base_name in WINDOWS_RESERVED_NAMES:
                raise InvalidPathError(f"Filename uses Windows reserved name: {name}")
            if WINDOWS_INVALID_CHARS.search(name):
                raise InvalidPathError(
                    f'Filename contains Windows-invalid characters (<>:"|?*): {name}'
                )
            if name.endswith(" ") or name.endswith("."):
                raise InvalidPathError(
                    f"Windows filenames cannot end with space or period: {name}"
                )

        if CONTROL_CHARS.search(name):
            raise InvalidPathError(f"Filename contains control characters: {name!r}")

        if not name.strip():
            raise InvalidPathError("Filename cannot be empty or whitespace-only")


def validate_path(raw_path: str, windows: Optional[bool] = None) -> str:
    """Validate ``raw_path`` with a default ``PathGuard``."""
    return PathGuard(windows=windows).validate(raw_path)
