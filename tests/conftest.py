"""
Pytest configuration and fixtures for sort_tools tests.
"""

import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

from sort_tools.core.config import Settings


class StubOracle:
    """Thread-safe stand-in for the external classifier.

    Replies with ``default`` unless ``side_effects`` holds a queue for the
    file name; queued exceptions are raised, anything else is returned.
    """

    def __init__(self, default: Optional[Dict[str, Any]] = None, delay: float = 0.0):
        self.default = default or {"category": "Documents"}
        self.delay = delay
        self.side_effects: Dict[str, List[Any]] = {}
        self.calls: List[Path] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def classify(self, path, options):
        with self._lock:
            self.calls.append(Path(path))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)

        try:
            if self.delay:
                time.sleep(self.delay)
            with self._lock:
                queue = self.side_effects.get(Path(path).name)
                effect = queue.pop(0) if queue else self.default
            if isinstance(effect, BaseException):
                raise effect
            return effect
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def oracle() -> StubOracle:
    """Oracle classifying every file as Documents."""
    return StubOracle()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings writing into the test's temporary directory."""
    return Settings(data_dir=tmp_path / "data", concurrency=2)


@pytest.fixture
def make_files(tmp_path: Path) -> Callable[..., List[Path]]:
    """Create files with distinct content inside a directory."""

    def _make(*names: str, directory: Optional[Path] = None) -> List[Path]:
        target = directory or (tmp_path / "inbox")
        target.mkdir(parents=True, exist_ok=True)
        paths = []
        for name in names:
            path = target / name
            path.write_text(f"contents of {name}")
            paths.append(path)
        return paths

    return _make


@pytest.fixture
def inbox(make_files, tmp_path: Path) -> Path:
    """Directory holding a.txt, b.txt and c.txt."""
    make_files("a.txt", "b.txt", "c.txt")
    return tmp_path / "inbox"
