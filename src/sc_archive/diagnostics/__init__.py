"""Diagnostics helpers: crawl events and credential redaction."""

from .events import (
    CRAWL_DONE,
    CRAWL_EVENT_SCHEMA_VERSION,
    CRAWL_FAILED,
    DUPLICATES_DROPPED,
    PAGE_DECODED,
    PAUSED_AFTER_ERROR,
    PLAYLIST_EXPANDED,
    RATE_LIMIT_WAIT,
    CrawlEventSink,
    JsonlEventLogger,
    build_crawl_event,
    validate_crawl_event,
)
from .redact import REDACTED, redact_text, redact_value

__all__ = [
    "CRAWL_DONE",
    "CRAWL_EVENT_SCHEMA_VERSION",
    "CRAWL_FAILED",
    "CrawlEventSink",
    "DUPLICATES_DROPPED",
    "JsonlEventLogger",
    "PAGE_DECODED",
    "PAUSED_AFTER_ERROR",
    "PLAYLIST_EXPANDED",
    "RATE_LIMIT_WAIT",
    "REDACTED",
    "build_crawl_event",
    "redact_text",
    "redact_value",
    "validate_crawl_event",
]
