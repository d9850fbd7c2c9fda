"""
Tests for repository identifiers, tree classification and the content loader.
"""

import threading

import pytest

from maintainability_index.exceptions import (
    BinaryFileError,
    ConfigurationError,
    FileMissingError,
)
from maintainability_index.models import (
    FileEntry,
    FileKind,
    RepositoryIdentifier,
    classify_path,
    dedupe_file_tree,
    parse_timestamp,
)
from maintainability_index.vcs.base import MemoizedContentLoader


class TestRepositoryIdentifier:
    """Test identifier parsing."""

    @pytest.mark.parametrize(
        "value",
        [
            "octo/widgets",
            "https://github.com/octo/widgets",
            "https://github.com/octo/widgets.git",
            "github.com/octo/widgets/",
            "  octo/widgets  ",
        ],
    )
    def test_valid(self, value):
        identifier = RepositoryIdentifier.parse(value)
        assert identifier == RepositoryIdentifier("octo", "widgets")
        assert identifier.full_name == "octo/widgets"

    @pytest.mark.parametrize(
        "value",
        ["", "octo", "octo/widgets/extra", "octo/", "/widgets", "octo/..", "oc to/w", "-octo/w"],
    )
    def test_malformed(self, value):
        with pytest.raises(ConfigurationError):
            RepositoryIdentifier.parse(value)


@pytest.mark.parametrize(
    "path,kind",
    [
        ("src/app.py", FileKind.SOURCE),
        ("lib/index.TS", FileKind.SOURCE),
        ("README", FileKind.DOC),
        ("docs/guide.md", FileKind.DOC),
        ("LICENSE", FileKind.DOC),
        ("pyproject.toml", FileKind.CONFIG),
        ("Makefile", FileKind.CONFIG),
        (".editorconfig", FileKind.CONFIG),
        ("requirements-dev.txt", FileKind.CONFIG),
        ("assets/logo.png", FileKind.OTHER),
    ],
)
def test_classify_path(path, kind):
    assert classify_path(path) is kind


def test_dedupe_file_tree_keeps_first():
    entries = [
        FileEntry("a.py", 1, FileKind.SOURCE),
        FileEntry("b.py", 2, FileKind.SOURCE),
        FileEntry("a.py", 3, FileKind.SOURCE),
    ]
    assert dedupe_file_tree(entries) == (entries[0], entries[1])


def test_parse_timestamp():
    parsed = parse_timestamp("2024-01-02T03:04:05Z")
    assert parsed.year == 2024
    assert parsed.utcoffset().total_seconds() == 0
    assert parse_timestamp(None) is None


class TestMemoizedContentLoader:
    """Test per-snapshot content caching."""

    def test_caches_success_and_failure(self):
        calls = []
        entries = (
            FileEntry("a.py", 5, FileKind.SOURCE),
            FileEntry("b.bin", 5, FileKind.OTHER),
        )

        def fetch(entry):
            calls.append(entry.path)
            if entry.path == "b.bin":
                raise BinaryFileError(entry.path)
            return "x = 1"

        loader = MemoizedContentLoader(entries, fetch)
        assert loader("a.py") == "x = 1"
        assert loader("a.py") == "x = 1"
        for _ in range(2):
            with pytest.raises(BinaryFileError):
                loader("b.bin")
        assert calls == ["a.py", "b.bin"]

    def test_unknown_path_is_missing(self):
        loader = MemoizedContentLoader((), lambda entry: "")
        with pytest.raises(FileMissingError):
            loader("nope.py")

    def test_concurrent_reads_fetch_once(self):
        calls = []
        entry = FileEntry("a.py", 5, FileKind.SOURCE)

        def fetch(e):
            calls.append(e.path)
            return "content"

        loader = MemoizedContentLoader((entry,), fetch)
        threads = [threading.Thread(target=loader, args=("a.py",)) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert calls == ["a.py"]

    def test_different_paths_load_in_parallel(self):
        """A slow fetch of one path does not block reads of another."""
        barrier = threading.Barrier(2, timeout=5)
        entries = (
            FileEntry("a.py", 5, FileKind.SOURCE),
            FileEntry("b.py", 5, FileKind.SOURCE),
        )

        def fetch(entry):
            barrier.wait()
            return entry.path

        loader = MemoizedContentLoader(entries, fetch)
        outcomes = {}

        def read(path):
            try:
                outcomes[path] = loader(path)
            except threading.BrokenBarrierError as e:
                outcomes[path] = e

        threads = [threading.Thread(target=read, args=(p,)) for p in ("a.py", "b.py")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert outcomes == {"a.py": "a.py", "b.py": "b.py"}

    def test_unexpected_error_is_retried(self):
        attempts = []
        entry = FileEntry("a.py", 5, FileKind.SOURCE)

        def fetch(e):
            attempts.append(e.path)
            if len(attempts) == 1:
                raise RuntimeError("socket closed")
            return "content"

        loader = MemoizedContentLoader((entry,), fetch)
        with pytest.raises(RuntimeError):
            loader("a.py")
        assert loader("a.py") == "content"
        assert attempts == ["a.py", "a.py"]


def test_snapshot_without_loader(make_snapshot):
    snapshot = make_snapshot()._replace(content_loader=None)
    with pytest.raises(FileMissingError):
        snapshot.read_file("README.md")
