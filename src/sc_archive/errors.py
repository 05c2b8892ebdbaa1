"""Error taxonomy for stable module boundaries."""

from __future__ import annotations


class ArchiveError(Exception):
    """Base exception for sc-archive."""


class ConfigError(ArchiveError):
    """Raised when configuration is invalid or missing."""


class AuthError(ArchiveError):
    """Raised for invalid credentials or 401/403 responses."""


class NetworkError(ArchiveError):
    """Raised for connectivity failures (timeouts, resets, DNS)."""


class ApiError(ArchiveError):
    """Raised for non-success HTTP responses that are not auth failures."""

    def __init__(self, message: str, *, status: int, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.retry_after = retry_after


class ServerError(ApiError):
    """Raised for 5xx responses."""


class DecodeError(ArchiveError):
    """Raised when a page payload does not match the expected schema."""


class RateLimitExceeded(ArchiveError):
    """Raised when the retry budget or the admission wait ceiling is exhausted."""


class CollectError(ArchiveError):
    """Raised for crawler lifecycle misuse."""


class CrawlAborted(ArchiveError):
    """Raised when a crawl is cancelled between iterations."""


class SnapshotError(ArchiveError):
    """Raised when crawled records cannot form a complete snapshot."""


class RenderError(ArchiveError):
    """Raised when reading or writing snapshot files fails."""
