"""Collection crawler contracts."""

from .base import (
    CancellationToken,
    CrawlState,
    CrawlStats,
    DetailFetcher,
    EventCancellationToken,
    PageFetcher,
)
from .crawler import DEFAULT_PAGE_SIZE, CollectionCrawler

__all__ = [
    "CancellationToken",
    "CollectionCrawler",
    "CrawlState",
    "CrawlStats",
    "DetailFetcher",
    "DEFAULT_PAGE_SIZE",
    "EventCancellationToken",
    "PageFetcher",
]
