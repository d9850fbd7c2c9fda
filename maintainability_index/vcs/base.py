"""
Base snapshot provider interface.

A provider turns a repository identifier into a frozen RepositorySnapshot.
File contents are loaded lazily through the snapshot's content loader.
"""

import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Callable

from maintainability_index.exceptions import FileContentError, FileMissingError
from maintainability_index.models import (
    FileEntry,
    RepositoryIdentifier,
    RepositorySnapshot,
)


class BaseSnapshotProvider(ABC):
    """Abstract base class for repository snapshot providers."""

    @abstractmethod
    def fetch_snapshot(
        self,
        identifier: RepositoryIdentifier,
        window_days: int = 90,
        max_commits: int = 100,
    ) -> RepositorySnapshot:
        """
        Fetch a snapshot of repository facts.

        Args:
            identifier: Repository to fetch.
            window_days: How far back to collect commits.
            max_commits: Upper bound on collected commits.

        Returns:
            A complete snapshot. Partial snapshots are never returned.

        Raises:
            RepositoryNotFoundError: If the repository does not exist or is
                inaccessible.
            RepositoryTransportError: If the fetch fails after retries.
        """

    @abstractmethod
    def fetch_file_content(
        self, identifier: RepositoryIdentifier, ref: str, entry: FileEntry
    ) -> str:
        """
        Fetch the text content of one tree entry.

        Raises:
            FileMissingError: If the file cannot be found.
            FileTooLargeError: If the file exceeds the provider's size limit.
            BinaryFileError: If the file is not text.
        """


class MemoizedContentLoader:
    """
    Thread-safe, per-snapshot file content cache.

    Both successful reads and FileContentError failures are remembered, so
    every calculator sees the same outcome for a given path. Each path is
    fetched at most once; concurrent readers of the same path wait for that
    fetch while reads of other paths proceed in parallel.
    """

    def __init__(self, entries: tuple[FileEntry, ...], fetch: Callable[[FileEntry], str]):
        self._entries = {entry.path: entry for entry in entries}
        self._fetch = fetch
        self._results: dict[str, Future] = {}
        self._lock = threading.Lock()

    def __call__(self, path: str) -> str:
        with self._lock:
            future = self._results.get(path)
            owner = future is None
            if owner:
                future = Future()
                self._results[path] = future

        if owner:
            try:
                future.set_result(self._load(path))
            except BaseException as e:
                # Unexpected errors are not remembered; the next read retries.
                with self._lock:
                    del self._results[path]
                future.set_exception(e)
                raise

        outcome = future.result()
        if isinstance(outcome, FileContentError):
            raise outcome
        return outcome

    def _load(self, path: str) -> str | FileContentError:
        entry = self._entries.get(path)
        if entry is None:
            return FileMissingError(path)
        try:
            return self._fetch(entry)
        except FileContentError as e:
            return e
