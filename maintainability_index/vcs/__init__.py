"""
Snapshot provider layer for the maintainability index.

Providers turn a repository identifier into a RepositorySnapshot. GitHub is
the only built-in platform.
"""

from maintainability_index.vcs.base import BaseSnapshotProvider, MemoizedContentLoader
from maintainability_index.vcs.github import GitHubProvider

__all__ = [
    "BaseSnapshotProvider",
    "MemoizedContentLoader",
    "GitHubProvider",
]
