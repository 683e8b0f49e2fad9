"""Version information for sort-tools."""

import subprocess
from importlib import metadata
from pathlib import Path
from typing import Optional

__version__ = "0.3.0"


def installed_version() -> str:
    """Version of the installed distribution, or the source tree's version."""
    try:
        return metadata.version("sort-tools")
    except metadata.PackageNotFoundError:
        return __version__


def get_git_hash(repo_dir: Optional[Path] = None) -> Optional[str]:
    """Short hash of HEAD when running from a checkout.

    Returns:
        7-character hash, or None outside a git repository
    """
    try:
        completed = subprocess.run(
            ["git", "rev-parse", "--short=7", "HEAD"],
            cwd=repo_dir or Path(__file__).resolve().parent.parent,
            capture_output=True,
            text=True,
            check=True,
            timeout=2,
        )
    except (
        subprocess.CalledProcessError,
        subprocess.TimeoutExpired,
        FileNotFoundError,
    ):
        return None
    return completed.stdout.strip() or None


def get_version_string() -> str:
    """Version for logs and diagnostic reports, e.g. "0.3.0 (git:abc1234)"."""
    version = installed_version()
    git_hash = get_git_hash()
    if git_hash:
        return f"{version} (git:{git_hash})"
    return version
