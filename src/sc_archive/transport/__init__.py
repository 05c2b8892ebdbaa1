"""HTTP transport for page fetches."""

from .http import DEFAULT_BASE_URL, ME_ENDPOINT, HttpPageFetcher

__all__ = ["DEFAULT_BASE_URL", "HttpPageFetcher", "ME_ENDPOINT"]
