"""Snapshot assembly from a crawler's record stream."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
import logging
from typing import Callable

from .errors import SnapshotError
from .models import CollectionKind, Record, Snapshot

logger = logging.getLogger(__name__)

NowFn = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotAssembler:
    """Drain a record stream into a complete, caller-owned Snapshot.

    Errors raised while draining propagate unchanged and no Snapshot is
    built; records gathered up to that point are discarded and the stream is
    closed.
    """

    def __init__(self, now: NowFn = _utc_now) -> None:
        self._now = now

    def assemble(self, crawler_output: Iterable[Record], kind: CollectionKind) -> Snapshot:
        kind = CollectionKind(kind)
        records: list[Record] = []
        seen_ids: set[int] = set()

        stream = iter(crawler_output)
        try:
            for record in stream:
                if record.kind != kind.record_tag:
                    raise SnapshotError(
                        f"Record {record.id} has kind '{record.kind}', expected '{kind.record_tag}'."
                    )
                if record.id in seen_ids:
                    raise SnapshotError(f"Record id {record.id} appears twice in the {kind.value} stream.")
                seen_ids.add(record.id)
                records.append(record)
        finally:
            # Stops a half-drained crawler so it settles in a terminal state.
            close = getattr(stream, "close", None)
            if close is not None:
                close()

        fetched_at = self._now()
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        logger.debug(f"Assembled {kind.value} snapshot with {len(records)} record(s)")
        return Snapshot(collection_kind=kind, records=tuple(records), fetched_at=fetched_at)
