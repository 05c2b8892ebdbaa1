"""Crawler interfaces: page transport, crawl states, stats, and cancellation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import threading
from typing import Any, Protocol

from sc_archive.models import PageRequest


class PageFetcher(Protocol):
    def fetch(self, request: PageRequest) -> Any:
        """Send one page request and return the raw response."""


class DetailFetcher(Protocol):
    def fetch_detail(self, endpoint: str) -> Any:
        """Fetch one resource by endpoint and return the raw response."""


class CancellationToken(Protocol):
    def is_cancelled(self) -> bool:
        """Return True once the caller asked the crawl to stop."""


class EventCancellationToken:
    """Cancellation token backed by a ``threading.Event``."""

    def __init__(self, event: threading.Event | None = None) -> None:
        self._event = event or threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


class CrawlState(str, Enum):
    INIT = "init"
    FETCHING = "fetching"
    DECODING = "decoding"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (CrawlState.DONE, CrawlState.FAILED)


@dataclass(frozen=True)
class CrawlStats:
    endpoint: str
    state: CrawlState
    pages_fetched: int = 0
    records_emitted: int = 0
    duplicates_dropped: int = 0
    retries: int = 0
    cursors_followed: int = 0
    details_fetched: int = 0
