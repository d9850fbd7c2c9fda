"""
Repository snapshot types shared by providers, calculators and the enhancer.
"""

import posixpath
import re
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, NamedTuple

from maintainability_index.exceptions import ConfigurationError, FileMissingError

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
_URL_PREFIXES = ("https://github.com/", "http://github.com/", "github.com/")


class RepositoryIdentifier(NamedTuple):
    """Owner/name pair identifying one hosted repository."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, value: str) -> "RepositoryIdentifier":
        """
        Parse ``owner/name`` or a GitHub repository URL.

        Args:
            value: Identifier text supplied by the user.

        Returns:
            The parsed identifier.

        Raises:
            ConfigurationError: If the identifier is malformed.
        """
        text = (value or "").strip()
        for prefix in _URL_PREFIXES:
            if text.lower().startswith(prefix):
                text = text[len(prefix) :]
                break
        text = text.rstrip("/")
        if text.endswith(".git"):
            text = text[: -len(".git")]

        parts = text.split("/")
        if len(parts) != 2:
            raise ConfigurationError(
                f"Repository must be in format 'owner/repo', got '{value}'."
            )
        owner, name = parts
        for part in (owner, name):
            if not part or part in (".", "..") or not _NAME_PATTERN.match(part):
                raise ConfigurationError(
                    f"Repository must be in format 'owner/repo', got '{value}'."
                )
        if owner.startswith("-"):
            raise ConfigurationError(f"Invalid repository owner '{owner}'.")
        return cls(owner, name)


class FileKind(str, Enum):
    """Coarse classification of a tree entry."""

    SOURCE = "source"
    DOC = "doc"
    CONFIG = "config"
    OTHER = "other"


class FileEntry(NamedTuple):
    """A file in the repository tree."""

    path: str
    size: int
    kind: FileKind


class CommitRecord(NamedTuple):
    """A commit on the default branch."""

    author: str
    timestamp: datetime
    message: str


class IssueRecord(NamedTuple):
    """An issue (pull requests excluded)."""

    state: str  # "open" or "closed"
    created_at: datetime
    closed_at: datetime | None = None
    labels: tuple[str, ...] = ()


class PullRequestRecord(NamedTuple):
    """A pull request."""

    state: str  # "open", "closed" or "merged"
    created_at: datetime
    merged_at: datetime | None = None
    review_count: int = 0


class RepositorySnapshot(NamedTuple):
    """
    Frozen set of repository facts used for one analysis run.

    ``issues`` and ``pull_requests`` are ``None`` when the category is disabled
    or unavailable for the repository, and an empty tuple when it exists but
    nothing has been filed.
    """

    identifier: RepositoryIdentifier
    fetched_at: datetime
    window_days: int
    file_tree: tuple[FileEntry, ...] = ()
    commits: tuple[CommitRecord, ...] = ()
    issues: tuple[IssueRecord, ...] | None = ()
    pull_requests: tuple[PullRequestRecord, ...] | None = ()
    description: str = ""
    notes: tuple[str, ...] = ()  # Provider warnings, e.g. a truncated tree
    content_loader: Callable[[str], str] | None = None

    def read_file(self, path: str) -> str:
        """
        Return the text content of a tree path.

        Raises:
            FileContentError: If the file cannot be read as text.
        """
        if self.content_loader is None:
            raise FileMissingError(path)
        return self.content_loader(path)

    def files_of_kind(self, kind: FileKind) -> list[FileEntry]:
        return [entry for entry in self.file_tree if entry.kind is kind]

    def top_level_files(self) -> list[FileEntry]:
        return [entry for entry in self.file_tree if "/" not in entry.path]


# --- Classification ---

SOURCE_EXTENSIONS = frozenset(
    {
        ".py", ".pyi", ".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".java",
        ".kt", ".kts", ".scala", ".groovy", ".go", ".rs", ".rb", ".php", ".c",
        ".h", ".cc", ".cpp", ".cxx", ".hpp", ".hh", ".cs", ".fs", ".swift",
        ".m", ".mm", ".sh", ".bash", ".ps1", ".lua", ".pl", ".pm", ".r",
        ".dart", ".ex", ".exs", ".erl", ".clj", ".hs", ".ml", ".jl", ".vue",
        ".svelte", ".sql",
    }
)  # fmt: skip

DOC_EXTENSIONS = frozenset({".md", ".markdown", ".rst", ".adoc", ".asciidoc", ".org", ".txt"})

CONFIG_EXTENSIONS = frozenset(
    {
        ".toml", ".ini", ".cfg", ".conf", ".yaml", ".yml", ".json", ".xml",
        ".gradle", ".properties", ".lock",
    }
)  # fmt: skip

# Extensionless documentation files, matched on the upper-cased stem.
DOC_NAMES = frozenset(
    {
        "README", "LICENSE", "LICENCE", "COPYING", "NOTICE", "AUTHORS",
        "CONTRIBUTING", "CHANGELOG", "CHANGES", "HISTORY", "CODE_OF_CONDUCT",
        "ARCHITECTURE", "SECURITY",
    }
)  # fmt: skip

CONFIG_NAMES = frozenset(
    {
        "makefile", "dockerfile", "procfile", "gemfile", "rakefile", "vagrantfile",
        ".gitignore", ".gitattributes", ".dockerignore", ".editorconfig", ".env",
        ".npmrc", ".nvmrc",
        "requirements.txt", "constraints.txt", "go.mod", "go.sum",
    }
)  # fmt: skip


def classify_path(path: str) -> FileKind:
    """Classify a tree path as source, doc, config or other."""
    basename = posixpath.basename(path)
    lower = basename.lower()
    stem, ext = posixpath.splitext(lower)

    if lower in CONFIG_NAMES or lower.startswith("requirements"):
        return FileKind.CONFIG
    if ext in SOURCE_EXTENSIONS:
        return FileKind.SOURCE
    if ext in DOC_EXTENSIONS or stem.upper() in DOC_NAMES:
        return FileKind.DOC
    if ext in CONFIG_EXTENSIONS:
        return FileKind.CONFIG
    return FileKind.OTHER


def dedupe_file_tree(entries: Iterable[FileEntry]) -> tuple[FileEntry, ...]:
    """Drop repeated paths, keeping the first occurrence and the input order."""
    seen: set[str] = set()
    unique: list[FileEntry] = []
    for entry in entries:
        if entry.path in seen:
            continue
        seen.add(entry.path)
        unique.append(entry)
    return tuple(unique)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub ISO-8601 timestamp into an aware datetime."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
