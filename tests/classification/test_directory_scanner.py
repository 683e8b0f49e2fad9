"""Tests for directory scanning."""

import os
from pathlib import Path

import pytest

from sort_tools.classification.scanner import DirectoryScanner, scan_directory
from sort_tools.core.errors import ScanLimitExceeded


class TestDirectoryScanner:
    """Tests for DirectoryScanner.scan."""

    def test_lists_regular_files(self, inbox):
        items = DirectoryScanner().scan(inbox)

        assert [item.path.name for item in items] == ["a.txt", "b.txt", "c.txt"]
        assert all(item.path.is_absolute() for item in items)

    def test_skips_hidden_and_directories(self, inbox):
        (inbox / ".DS_Store").write_text("")
        (inbox / ".git").mkdir()
        (inbox / "nested").mkdir()
        (inbox / "nested" / "deep.txt").write_text("")

        names = [item.path.name for item in DirectoryScanner().scan(inbox)]

        assert names == ["a.txt", "b.txt", "c.txt"]

    def test_skips_unsafe_names(self, inbox):
        (inbox / "what?.txt").write_text("")
        (inbox / "pipe|name.txt").write_text("")

        names = [item.path.name for item in DirectoryScanner().scan(inbox)]

        assert names == ["a.txt", "b.txt", "c.txt"]

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="requires named pipes")
    def test_skips_named_pipes(self, inbox):
        os.mkfifo(inbox / "queue")

        names = [item.path.name for item in DirectoryScanner().scan(inbox)]

        assert names == ["a.txt", "b.txt", "c.txt"]

    def test_limit_allows_exactly_max(self, inbox):
        assert len(DirectoryScanner(max_files=3).scan(inbox)) == 3

    def test_limit_exceeded(self, inbox):
        with pytest.raises(ScanLimitExceeded, match="too many files"):
            DirectoryScanner(max_files=2).scan(inbox)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(OSError):
            DirectoryScanner().scan(tmp_path / "missing")

    def test_items_use_scanner_hasher(self, inbox):
        items = DirectoryScanner(hasher=lambda path: "f" * 16).scan(inbox)

        assert items[0].fingerprint == "f" * 16

    def test_module_function(self, inbox):
        assert len(scan_directory(inbox)) == 3

    def test_relative_directory_resolved(self, inbox, monkeypatch):
        monkeypatch.chdir(inbox.parent)

        items = scan_directory(Path("inbox"))

        assert items[0].path == inbox.resolve() / "a.txt"
