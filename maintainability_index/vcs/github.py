"""
GitHub snapshot provider.

Repository metadata, commits, issues and pull requests come from the GraphQL
API in one round trip; the file tree and file contents come from the REST API.
"""

import logging
import os
import time
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import quote

import httpx
from dotenv import load_dotenv

from maintainability_index.exceptions import (
    BinaryFileError,
    ConfigurationError,
    FileContentError,
    FileMissingError,
    FileTooLargeError,
    RateLimitError,
    RepositoryNotFoundError,
    RepositoryTransportError,
)
from maintainability_index.http_client import _get_http_client
from maintainability_index.models import (
    CommitRecord,
    FileEntry,
    IssueRecord,
    PullRequestRecord,
    RepositoryIdentifier,
    RepositorySnapshot,
    classify_path,
    dedupe_file_tree,
    parse_timestamp,
)
from maintainability_index.vcs.base import BaseSnapshotProvider, MemoizedContentLoader

load_dotenv()

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"

# Sample size constants from GraphQL queries
GRAPHQL_SAMPLE_LIMITS = {
    "commits_per_page": 100,
    "issues": 100,
    "pull_requests": 100,
    "labels": 20,
}

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
BACKOFF_BASE = 2.0

_REPOSITORY_QUERY = """
query GetRepository(
  $owner: String!, $name: String!, $since: GitTimestamp!, $commitLimit: Int!
) {
  repository(owner: $owner, name: $name) {
    description
    hasIssuesEnabled
    defaultBranchRef {
      name
      target {
        ... on Commit {
          oid
          history(first: $commitLimit, since: $since) {
            pageInfo {
              hasNextPage
              endCursor
            }
            nodes {
              committedDate
              message
              author {
                name
                email
                user {
                  login
                }
              }
            }
          }
        }
      }
    }
    issues(last: 100) {
      nodes {
        state
        createdAt
        closedAt
        labels(first: 20) {
          nodes {
            name
          }
        }
      }
    }
    pullRequests(last: 100) {
      nodes {
        state
        createdAt
        mergedAt
        reviews {
          totalCount
        }
      }
    }
  }
}
"""

_HISTORY_PAGE_QUERY = """
query GetHistoryPage(
  $owner: String!, $name: String!, $since: GitTimestamp!, $commitLimit: Int!,
  $cursor: String!
) {
  repository(owner: $owner, name: $name) {
    defaultBranchRef {
      target {
        ... on Commit {
          history(first: $commitLimit, since: $since, after: $cursor) {
            pageInfo {
              hasNextPage
              endCursor
            }
            nodes {
              committedDate
              message
              author {
                name
                email
                user {
                  login
                }
              }
            }
          }
        }
      }
    }
  }
}
"""


class GitHubProvider(BaseSnapshotProvider):
    """GitHub snapshot provider using the GraphQL and REST APIs."""

    def __init__(
        self,
        token: str | None = None,
        api_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
        max_file_bytes: int = 1_000_000,
    ):
        """
        Initialize GitHub provider.

        Args:
            token: GitHub Personal Access Token. If not provided, reads from
                   GITHUB_TOKEN environment variable.
            api_url: Base URL of the GitHub API.
            timeout: Per-request timeout in seconds.
            max_retries: Retries for rate limits, 5xx and transport errors.
            max_file_bytes: Files larger than this are refused without fetching.

        Raises:
            ConfigurationError: If no token is available.
        """
        self.token = token or os.getenv("GITHUB_TOKEN")
        if not self.token or not self.token.strip():
            raise ConfigurationError(
                "GITHUB_TOKEN is required for GitHub provider.\n"
                "\n"
                "To get started:\n"
                "1. Create a GitHub Personal Access Token:\n"
                "   https://github.com/settings/tokens/new\n"
                "2. Select scope: 'public_repo'\n"
                "3. Set the token:\n"
                "   export GITHUB_TOKEN='your_token_here'  # Linux/macOS\n"
                "   or add to your .env file: GITHUB_TOKEN=your_token_here\n"
            )
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.max_file_bytes = max_file_bytes

    # --- Snapshot ---

    def fetch_snapshot(
        self,
        identifier: RepositoryIdentifier,
        window_days: int = 90,
        max_commits: int = 100,
    ) -> RepositorySnapshot:
        fetched_at = datetime.now(timezone.utc)
        since = (fetched_at - timedelta(days=window_days)).isoformat()
        variables = {
            "owner": identifier.owner,
            "name": identifier.name,
            "since": since,
            "commitLimit": min(max_commits, GRAPHQL_SAMPLE_LIMITS["commits_per_page"]),
        }
        logger.info("Fetching repository data for %s", identifier.full_name)
        data = self._query_graphql(_REPOSITORY_QUERY, variables, identifier)
        repo_info = data.get("repository")
        if repo_info is None:
            raise RepositoryNotFoundError(identifier.full_name)

        notes: list[str] = []
        branch = repo_info.get("defaultBranchRef")
        target = (branch or {}).get("target") or {}
        ref = target.get("oid")

        if ref is None:
            logger.info("%s has no default branch; treating as empty", identifier.full_name)
            file_tree: tuple[FileEntry, ...] = ()
            commits: tuple[CommitRecord, ...] = ()
        else:
            commits = self._collect_commits(
                identifier, target.get("history") or {}, variables, max_commits
            )
            file_tree = self._fetch_tree(identifier, ref, notes)

        try:
            issues = self._normalize_issues(repo_info)
            pull_requests = self._normalize_pull_requests(repo_info)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise RepositoryTransportError(
                f"GitHub API returned malformed data for {identifier.full_name}: {e}"
            ) from e

        loader = MemoizedContentLoader(
            file_tree,
            lambda entry: self.fetch_file_content(identifier, ref or "HEAD", entry),
        )

        return RepositorySnapshot(
            identifier=identifier,
            fetched_at=fetched_at,
            window_days=window_days,
            file_tree=file_tree,
            commits=commits,
            issues=issues,
            pull_requests=pull_requests,
            description=repo_info.get("description") or "",
            notes=tuple(notes),
            content_loader=loader,
        )

    def _collect_commits(
        self,
        identifier: RepositoryIdentifier,
        history: dict[str, Any],
        variables: dict[str, Any],
        max_commits: int,
    ) -> tuple[CommitRecord, ...]:
        commits = [self._normalize_commit(node) for node in history.get("nodes") or []]
        page_info = history.get("pageInfo") or {}

        while len(commits) < max_commits and page_info.get("hasNextPage"):
            page_variables = {
                **variables,
                "commitLimit": min(
                    max_commits - len(commits),
                    GRAPHQL_SAMPLE_LIMITS["commits_per_page"],
                ),
                "cursor": page_info.get("endCursor"),
            }
            data = self._query_graphql(_HISTORY_PAGE_QUERY, page_variables, identifier)
            repo_info = data.get("repository") or {}
            branch = repo_info.get("defaultBranchRef") or {}
            history = (branch.get("target") or {}).get("history") or {}
            commits.extend(
                self._normalize_commit(node) for node in history.get("nodes") or []
            )
            page_info = history.get("pageInfo") or {}

        commits.sort(key=lambda commit: commit.timestamp, reverse=True)
        return tuple(commits[:max_commits])

    @staticmethod
    def _normalize_commit(node: dict[str, Any]) -> CommitRecord:
        author = node.get("author") or {}
        user = author.get("user") or {}
        name = user.get("login") or author.get("name") or author.get("email") or "unknown"
        return CommitRecord(
            author=name,
            timestamp=parse_timestamp(node.get("committedDate")),
            message=node.get("message") or "",
        )

    @staticmethod
    def _normalize_issues(
        repo_info: dict[str, Any],
    ) -> tuple[IssueRecord, ...] | None:
        if not repo_info.get("hasIssuesEnabled", True):
            return None
        connection = repo_info.get("issues")
        if connection is None:
            return None
        issues = []
        for node in connection.get("nodes") or []:
            labels = (node.get("labels") or {}).get("nodes") or []
            issues.append(
                IssueRecord(
                    state=(node.get("state") or "open").lower(),
                    created_at=parse_timestamp(node.get("createdAt")),
                    closed_at=parse_timestamp(node.get("closedAt")),
                    labels=tuple(label["name"] for label in labels if label.get("name")),
                )
            )
        return tuple(issues)

    @staticmethod
    def _normalize_pull_requests(
        repo_info: dict[str, Any],
    ) -> tuple[PullRequestRecord, ...] | None:
        connection = repo_info.get("pullRequests")
        if connection is None:
            return None
        pull_requests = []
        for node in connection.get("nodes") or []:
            merged_at = parse_timestamp(node.get("mergedAt"))
            state = "merged" if merged_at else (node.get("state") or "open").lower()
            pull_requests.append(
                PullRequestRecord(
                    state=state,
                    created_at=parse_timestamp(node.get("createdAt")),
                    merged_at=merged_at,
                    review_count=(node.get("reviews") or {}).get("totalCount", 0),
                )
            )
        return tuple(pull_requests)

    def _fetch_tree(
        self, identifier: RepositoryIdentifier, ref: str, notes: list[str]
    ) -> tuple[FileEntry, ...]:
        url = f"{self.api_url}/repos/{identifier.full_name}/git/trees/{ref}"
        response = self._request("GET", url, params={"recursive": "1"})
        if response.status_code == 404:
            raise RepositoryNotFoundError(identifier.full_name)
        if response.status_code == 409:
            # Git Repository is empty
            return ()
        self._raise_for_status(response)

        payload = self._json_object(response)
        if payload.get("truncated"):
            message = (
                f"File tree for {identifier.full_name} was truncated by the "
                "GitHub API; results cover a partial listing."
            )
            logger.warning(message)
            notes.append(message)

        items = payload.get("tree") or []
        if not isinstance(items, list):
            raise RepositoryTransportError(
                f"GitHub API returned a malformed tree for {identifier.full_name}",
                response.status_code,
            )
        entries = []
        for item in items:
            if not isinstance(item, dict) or item.get("type") != "blob":
                continue
            path = item.get("path")
            size = item.get("size", 0)
            if not isinstance(path, str) or not path or not isinstance(size, int):
                raise RepositoryTransportError(
                    f"GitHub API returned a malformed tree entry for "
                    f"{identifier.full_name}: {item!r}",
                    response.status_code,
                )
            entries.append(FileEntry(path, size, classify_path(path)))
        return dedupe_file_tree(entries)

    # --- File content ---

    def fetch_file_content(
        self, identifier: RepositoryIdentifier, ref: str, entry: FileEntry
    ) -> str:
        if entry.size > self.max_file_bytes:
            raise FileTooLargeError(entry.path, entry.size, self.max_file_bytes)

        url = f"{self.api_url}/repos/{identifier.full_name}/contents/{quote(entry.path)}"
        try:
            response = self._request(
                "GET",
                url,
                params={"ref": ref},
                headers={"Accept": "application/vnd.github.raw+json"},
            )
        except RepositoryTransportError as e:
            raise FileContentError(entry.path, f"could not be fetched ({e})") from e

        if response.status_code == 404:
            raise FileMissingError(entry.path)
        if response.status_code >= 400:
            raise FileContentError(
                entry.path, f"GitHub API returned {response.status_code}"
            )

        content = response.content
        if len(content) > self.max_file_bytes:
            raise FileTooLargeError(entry.path, len(content), self.max_file_bytes)
        if b"\x00" in content:
            raise BinaryFileError(entry.path)
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise BinaryFileError(entry.path) from e

    # --- Transport ---

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _query_graphql(
        self,
        query: str,
        variables: dict[str, Any],
        identifier: RepositoryIdentifier,
    ) -> dict[str, Any]:
        """
        Execute GraphQL query against GitHub API.

        Returns:
            The ``data`` member of the response.

        Raises:
            RepositoryNotFoundError: If GitHub reports the repository missing.
            RepositoryTransportError: If the API returns an error.
        """
        response = self._request(
            "POST",
            f"{self.api_url}/graphql",
            json={"query": query, "variables": variables},
        )
        self._raise_for_status(response)
        data = self._json_object(response)

        errors = data.get("errors")
        if errors:
            if any(error.get("type") == "NOT_FOUND" for error in errors):
                raise RepositoryNotFoundError(identifier.full_name)
            if any(error.get("type") == "RATE_LIMITED" for error in errors):
                raise RateLimitError(response.status_code)
            messages = "; ".join(error.get("message", "unknown error") for error in errors)
            raise RepositoryTransportError(f"GitHub API errors: {messages}")

        return data.get("data") or {}

    @staticmethod
    def _json_object(response: httpx.Response) -> dict[str, Any]:
        """Decode a JSON object body, mapping anything else to a transport error."""
        try:
            payload = response.json()
        except ValueError as e:
            raise RepositoryTransportError(
                f"GitHub API returned a non-JSON response for {response.request.url}",
                response.status_code,
            ) from e
        if not isinstance(payload, dict):
            raise RepositoryTransportError(
                f"GitHub API returned an unexpected payload for {response.request.url}",
                response.status_code,
            )
        return payload

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code == 401:
            raise ConfigurationError("GitHub API rejected the provided token.")
        if response.status_code >= 400:
            raise RepositoryTransportError(
                f"GitHub API returned {response.status_code} for {response.request.url}",
                response.status_code,
            )

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        if response.status_code == 429:
            return True
        if response.status_code != 403:
            return False
        if response.headers.get("x-ratelimit-remaining") == "0":
            return True
        return "rate limit" in response.text.lower()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request, retrying rate limits, 5xx and transport errors.

        Non-retryable responses (including 404) are returned to the caller.

        Raises:
            RateLimitError: If still rate limited after all retries.
            RepositoryTransportError: If the request keeps failing.
        """
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        client = _get_http_client()
        last_error: Exception | None = None
        last_status: int | None = None
        rate_limited = False

        for attempt in range(self.max_retries + 1):
            try:
                response = client.request(
                    method, url, headers=headers, timeout=self.timeout, **kwargs
                )
            except httpx.TransportError as e:
                last_error = e
                last_status = None
                rate_limited = False
                logger.debug("Transport error for %s: %s", url, e)
            else:
                last_status = response.status_code
                rate_limited = self._is_rate_limited(response)
                if not rate_limited and response.status_code not in RETRYABLE_STATUS:
                    return response
                logger.debug("GitHub API returned %s for %s", response.status_code, url)

            if attempt < self.max_retries:
                sleep_time = BACKOFF_BASE**attempt  # 1s, 2s, 4s
                logger.info(
                    "Retrying %s after %ss (attempt %d/%d)",
                    url,
                    sleep_time,
                    attempt + 1,
                    self.max_retries,
                )
                time.sleep(sleep_time)

        if rate_limited:
            raise RateLimitError(last_status)
        if last_status is None:
            raise RepositoryTransportError(
                f"Network error for {url}: {last_error}"
            ) from last_error
        raise RepositoryTransportError(
            f"Request failed after {self.max_retries} retries: {url}", last_status
        )
