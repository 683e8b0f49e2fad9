"""
File utilities: content fingerprints, filename checks and logging setup.
"""

import hashlib
import logging
import os
import re
from pathlib import Path
from typing import Union

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger(__name__)

# Files up to this size are hashed completely
MAX_FULL_HASH_SIZE = 100 * 1024 * 1024
# Larger files only contribute their first 10MB plus size and mtime
LARGE_FILE_SAMPLE_SIZE = 10 * 1024 * 1024
READ_CHUNK_SIZE = 64 * 1024
FINGERPRINT_LENGTH = 16

# Blocks redirection, quotes, pipes, wildcards, colons, separators and
# control characters
SAFE_FILENAME = re.compile(r'^[^<>"|?*:\\/\x00-\x1f]+$')


def compute_fingerprint(
    file_path: Union[str, Path],
    full_hash_limit: int = MAX_FULL_HASH_SIZE,
    sample_size: int = LARGE_FILE_SAMPLE_SIZE,
    chunk_size: int = READ_CHUNK_SIZE,
) -> str:
    """
    Compute a short, stable fingerprint of a file for use as a cache key.

    Files at or below ``full_hash_limit`` bytes are streamed through SHA-256
    in full. Larger files hash only their first ``sample_size`` bytes plus
    their size and modification time, so a tail-only edit that keeps the
    mtime is not detected. The result is a cache key, not an integrity check.

    Args:
        file_path: Path to the file
        full_hash_limit: Largest size hashed completely
        sample_size: Bytes read from the head of a large file
        chunk_size: Read buffer size

    Returns:
        16 lowercase hex characters

    Raises:
        OSError: If the file cannot be statted or read
    """
    stats = os.stat(file_path)
    hash_obj = hashlib.sha256()

    with open(file_path, "rb") as f:
        if stats.st_size > full_hash_limit:
            logger.debug(
                f"Fingerprinting {file_path} from its first "
                f"{format_bytes(sample_size)} ({format_bytes(stats.st_size)} total)"
            )
            remaining = sample_size
            while remaining > 0:
                chunk = f.read(min(chunk_size, remaining))
                if not chunk:
                    break
                hash_obj.update(chunk)
                remaining -= len(chunk)

            hash_obj.update(f"size:{stats.st_size}".encode())
            hash_obj.update(f"mtime:{stats.st_mtime_ns}".encode())
        else:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                hash_obj.update(chunk)

    return hash_obj.hexdigest()[:FINGERPRINT_LENGTH]


def is_safe_filename(name: str) -> bool:
    """Check a bare filename against the unsafe-character blacklist."""
    return bool(SAFE_FILENAME.match(name))


def format_bytes(size_bytes: int) -> str:
    """
    Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "2.50 GB")
    """
    if size_bytes == 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    unit_index = 0
    size = float(size_bytes)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    return f"{size:.2f} {units[unit_index]}"


def setup_logging(
    verbose: bool = False, quiet: bool = False, rich_output: bool = True
) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, set logging level to DEBUG
        quiet: If True, set logging level to WARNING
        rich_output: Use a rich handler instead of plain text lines
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    if rich_output:
        logging.basicConfig(
            level=level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(rich_tracebacks=True, console=Console(stderr=True))],
            force=True,
        )
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            force=True,
        )
