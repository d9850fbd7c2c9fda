"""
Shared snapshot builders for the test suite.
"""

from datetime import datetime, timedelta, timezone

import pytest

from maintainability_index.exceptions import FileContentError, FileMissingError
from maintainability_index.models import (
    CommitRecord,
    FileEntry,
    RepositoryIdentifier,
    RepositorySnapshot,
    classify_path,
)
from maintainability_index.vcs.base import MemoizedContentLoader

FETCHED_AT = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
IDENTIFIER = RepositoryIdentifier("octo", "widgets")


def build_snapshot(
    files: dict[str, str] | None = None,
    failures: dict[str, FileContentError] | None = None,
    commits=(),
    issues=(),
    pull_requests=(),
    window_days: int = 90,
    description: str = "",
    notes=(),
) -> RepositorySnapshot:
    """Build a snapshot whose tree and contents come from in-memory files."""
    files = files or {}
    failures = failures or {}
    entries = tuple(
        FileEntry(path, len(content.encode("utf-8")), classify_path(path))
        for path, content in files.items()
    ) + tuple(FileEntry(path, 10, classify_path(path)) for path in failures)

    def fetch(entry: FileEntry) -> str:
        if entry.path in failures:
            raise failures[entry.path]
        if entry.path not in files:
            raise FileMissingError(entry.path)
        return files[entry.path]

    return RepositorySnapshot(
        identifier=IDENTIFIER,
        fetched_at=FETCHED_AT,
        window_days=window_days,
        file_tree=entries,
        commits=tuple(commits),
        issues=None if issues is None else tuple(issues),
        pull_requests=None if pull_requests is None else tuple(pull_requests),
        description=description,
        notes=tuple(notes),
        content_loader=MemoizedContentLoader(entries, fetch),
    )


def recent_commits(count: int, authors=("alice", "bob", "carol"), days_ago: float = 0.5):
    """``count`` commits spread over the week before FETCHED_AT."""
    return tuple(
        CommitRecord(
            author=authors[i % len(authors)],
            timestamp=FETCHED_AT - timedelta(days=days_ago + i * 0.5),
            message=f"Change number {i}\n\nDetails.",
        )
        for i in range(count)
    )


@pytest.fixture
def make_snapshot():
    """Factory fixture for in-memory snapshots."""
    return build_snapshot


@pytest.fixture
def make_commits():
    """Factory fixture for recent commit records."""
    return recent_commits


@pytest.fixture
def fetched_at():
    """Reference time of every snapshot built by ``make_snapshot``."""
    return FETCHED_AT
