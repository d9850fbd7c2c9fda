"""
Exception hierarchy for the maintainability index.

Fatal errors derive from AnalysisError and abort a run. Everything else is
absorbed into the report by the orchestrator.
"""


class MaintainabilityError(Exception):
    """Base exception for all maintainability index errors."""


# --- Fatal ---


class AnalysisError(MaintainabilityError):
    """Raised when an analysis run cannot produce a report."""


class ConfigurationError(AnalysisError):
    """Raised for a malformed identifier, missing credential or bad setting."""


class RepositoryNotFoundError(AnalysisError):
    """Raised when the repository does not exist or is inaccessible."""

    def __init__(self, full_name: str):
        super().__init__(f"Repository {full_name} not found or is inaccessible.")
        self.full_name = full_name


class RepositoryTransportError(AnalysisError):
    """Raised when fetching repository data fails after provider retries."""

    def __init__(self, message: str, status_code: int | None = None):
        """
        Initialize transport error.

        Args:
            message: Error message
            status_code: HTTP status code if available
        """
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(RepositoryTransportError):
    """Raised when the hosting provider keeps rate limiting the client."""

    def __init__(self, status_code: int | None = None):
        super().__init__("GitHub API rate limited, retry later.", status_code)


# --- Per-file content failures (absorbed by calculators) ---


class FileContentError(MaintainabilityError):
    """Raised when a single file's content cannot be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class FileMissingError(FileContentError):
    """Raised when a file listed in the tree cannot be found."""

    def __init__(self, path: str):
        super().__init__(path, "not found")


class FileTooLargeError(FileContentError):
    """Raised when a file exceeds the configured content size limit."""

    def __init__(self, path: str, size: int, limit: int):
        super().__init__(path, f"{size} bytes exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit


class BinaryFileError(FileContentError):
    """Raised when a file does not decode as text."""

    def __init__(self, path: str):
        super().__init__(path, "binary content")


# --- Narrative enhancement (absorbed by the orchestrator) ---


class EnhancementError(MaintainabilityError):
    """Raised when the narrative enhancer fails or returns garbage."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
