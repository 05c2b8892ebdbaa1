"""Structured crawl event schema and JSONL event log.

Crawlers report progress through a plain ``(event_type, payload)`` callback.
``JsonlEventLogger.sink()`` binds such a callback to a run and a collection,
stamping, redacting and validating each event before it is appended.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
import json
from pathlib import Path
import threading
from typing import Any

from sc_archive.diagnostics.redact import redact_value
from sc_archive.errors import ArchiveError

CRAWL_EVENT_SCHEMA_VERSION = "v1"

PAGE_DECODED = "page_decoded"
RATE_LIMIT_WAIT = "rate_limit_wait"
PAUSED_AFTER_ERROR = "paused_after_error"
DUPLICATES_DROPPED = "duplicates_dropped"
CRAWL_DONE = "crawl_done"
CRAWL_FAILED = "crawl_failed"
PLAYLIST_EXPANDED = "playlist_expanded"

EVENT_TYPES = frozenset(
    {
        PAGE_DECODED,
        RATE_LIMIT_WAIT,
        PAUSED_AFTER_ERROR,
        DUPLICATES_DROPPED,
        PLAYLIST_EXPANDED,
        CRAWL_DONE,
        CRAWL_FAILED,
    }
)

CrawlEventSink = Callable[[str, dict[str, Any]], None]


@dataclass(frozen=True)
class CrawlEvent:
    schema_version: str
    event_type: str
    occurred_at: str
    run_id: str
    source_id: str | None
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_REQUIRED_FIELDS = tuple(CrawlEvent.__dataclass_fields__)


class JsonlEventLogger:
    """Append crawl events to a JSONL file, one object per line.

    Appends are serialized with a lock so concurrent crawls can share one log.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def append(
        self,
        event_type: str,
        *,
        run_id: str,
        source_id: str | None = None,
        payload: dict[str, Any] | None = None,
        occurred_at: datetime | None = None,
    ) -> dict[str, Any]:
        event = build_crawl_event(
            event_type,
            run_id=run_id,
            source_id=source_id,
            payload=payload,
            occurred_at=occurred_at,
        )
        line = json.dumps(event, sort_keys=True, default=str) + "\n"
        with self._lock, self._path.open("a", encoding="utf-8") as stream:
            stream.write(line)
        return event

    def sink(self, *, run_id: str, source_id: str | None = None) -> CrawlEventSink:
        """Bind run and source ids, returning a callback a crawler can emit into."""

        def _emit(event_type: str, payload: dict[str, Any]) -> None:
            self.append(event_type, run_id=run_id, source_id=source_id, payload=payload)

        return _emit


def build_crawl_event(
    event_type: str,
    *,
    run_id: str,
    source_id: str | None = None,
    payload: dict[str, Any] | None = None,
    occurred_at: datetime | None = None,
) -> dict[str, Any]:
    """Stamp, redact and validate one event; returns its serializable form."""
    if payload is not None and not isinstance(payload, dict):
        raise ArchiveError("payload must be a dictionary.")

    stamp = occurred_at or datetime.now(timezone.utc)
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    source = source_id.strip() if isinstance(source_id, str) else None

    event = CrawlEvent(
        schema_version=CRAWL_EVENT_SCHEMA_VERSION,
        event_type=event_type.strip(),
        occurred_at=stamp.isoformat(),
        run_id=run_id.strip(),
        source_id=source or None,
        payload=redact_value(payload or {}),
    ).to_dict()
    validate_crawl_event(event)
    return event


def validate_crawl_event(event: dict[str, Any]) -> None:
    """Reject events that miss fields, use another schema, or carry unknown types."""
    missing = [name for name in _REQUIRED_FIELDS if name not in event]
    if missing:
        raise ArchiveError(f"Crawl event missing required field '{missing[0]}'.")
    if event["schema_version"] != CRAWL_EVENT_SCHEMA_VERSION:
        raise ArchiveError(
            f"Unsupported crawl event schema '{event['schema_version']}'. "
            f"Expected '{CRAWL_EVENT_SCHEMA_VERSION}'."
        )
    if event["event_type"] not in EVENT_TYPES:
        raise ArchiveError(f"Unknown crawl event type '{event['event_type']}'.")
    if not isinstance(event["run_id"], str) or not event["run_id"]:
        raise ArchiveError("run_id must be non-empty.")
    if event["source_id"] is not None and not isinstance(event["source_id"], str):
        raise ArchiveError("source_id must be a string or null.")
    if not isinstance(event["payload"], dict):
        raise ArchiveError("payload must be an object.")
