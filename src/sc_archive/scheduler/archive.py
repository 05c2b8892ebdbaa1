"""Multi-collection archive orchestration helpers."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path
import time

from sc_archive.collectors.base import CancellationToken, CrawlStats, PageFetcher
from sc_archive.collectors.crawler import CollectionCrawler
from sc_archive.config import RateLimitConfig, RetryConfig, RuntimeConfig, default_config
from sc_archive.diagnostics.events import CrawlEventSink, JsonlEventLogger
from sc_archive.diagnostics.redact import redact_text
from sc_archive.endpoints import endpoint_for
from sc_archive.errors import ArchiveError, CollectError
from sc_archive.models import CollectionKind, Snapshot
from sc_archive.ratelimit import RateLimiter
from sc_archive.render.jsonout import write_snapshot
from sc_archive.retry import RetryPolicy
from sc_archive.snapshot import SnapshotAssembler

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], None]


@dataclass(frozen=True)
class ArchiveOutcome:
    kind: str
    ok: bool
    record_count: int
    pages: int = 0
    retries: int = 0
    duplicates_dropped: int = 0
    error: str | None = None
    error_type: str | None = None
    snapshot_path: str | None = None


@dataclass(frozen=True)
class ArchiveRunResult:
    run_id: str
    snapshots: tuple[Snapshot, ...]
    outcomes: tuple[ArchiveOutcome, ...]

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    @property
    def total_records(self) -> int:
        return sum(outcome.record_count for outcome in self.outcomes)

    def snapshot_for(self, kind: CollectionKind) -> Snapshot | None:
        kind = CollectionKind(kind)
        for snapshot in self.snapshots:
            if snapshot.collection_kind is kind:
                return snapshot
        return None


def build_limiter(config: RateLimitConfig, *, sleep: SleepFn = time.sleep) -> RateLimiter:
    return RateLimiter(
        config.max_requests,
        config.window_seconds,
        max_wait_seconds=config.max_wait_seconds,
        sleep=sleep,
    )


def build_retry_policy(config: RetryConfig) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=config.max_attempts,
        base_delay_seconds=config.base_delay_seconds,
        max_delay_seconds=config.max_delay_seconds,
        jitter_ratio=config.jitter_ratio,
    )


def build_crawler(
    fetcher: PageFetcher,
    kind: CollectionKind,
    user_id: int,
    *,
    config: RuntimeConfig | None = None,
    limiter: RateLimiter | None = None,
    retry_policy: RetryPolicy | None = None,
    cancel: CancellationToken | None = None,
    sleep: SleepFn = time.sleep,
    on_event: CrawlEventSink | None = None,
) -> CollectionCrawler:
    """Wire one crawler for ``kind`` of ``user_id`` from runtime config.

    Playlists are expanded to their full detail through ``fetcher.fetch_detail``
    unless ``api.expand_playlists`` is off.
    """
    resolved = config or default_config()
    kind = CollectionKind(kind)
    expand = kind is CollectionKind.PLAYLISTS and resolved.api.expand_playlists
    return CollectionCrawler(
        fetcher,
        endpoint_for(kind, user_id),
        kind,
        limiter=limiter if limiter is not None else build_limiter(resolved.rate_limit, sleep=sleep),
        retry_policy=retry_policy or build_retry_policy(resolved.retry),
        page_size=resolved.api.page_size,
        cancel=cancel,
        sleep=sleep,
        on_event=on_event,
        detail_fetcher=fetcher if expand else None,
    )


def archive_collection(
    fetcher: PageFetcher,
    kind: CollectionKind,
    user_id: int,
    *,
    config: RuntimeConfig | None = None,
    limiter: RateLimiter | None = None,
    retry_policy: RetryPolicy | None = None,
    cancel: CancellationToken | None = None,
    sleep: SleepFn = time.sleep,
    on_event: CrawlEventSink | None = None,
    assembler: SnapshotAssembler | None = None,
) -> Snapshot:
    """Crawl one collection to exhaustion and return its complete Snapshot.

    Any classified failure propagates; a partial crawl never yields a Snapshot.
    """
    snapshot, _stats = _archive_with_stats(
        build_crawler(
            fetcher,
            kind,
            user_id,
            config=config,
            limiter=limiter,
            retry_policy=retry_policy,
            cancel=cancel,
            sleep=sleep,
            on_event=on_event,
        ),
        assembler or SnapshotAssembler(),
    )
    return snapshot


def run_archive(
    fetcher: PageFetcher,
    kinds: Iterable[CollectionKind],
    user_id: int,
    *,
    config: RuntimeConfig | None = None,
    limiter: RateLimiter | None = None,
    cancel: CancellationToken | None = None,
    sleep: SleepFn = time.sleep,
    output_dir: str | Path | None = None,
    max_workers: int = 1,
    event_logger: JsonlEventLogger | None = None,
    run_id: str | None = None,
) -> ArchiveRunResult:
    """Archive each requested collection independently.

    One kind failing is recorded in its outcome and does not stop the others.
    All crawls share one rate limiter, since the request budget belongs to
    the remote API rather than to a single endpoint. With ``output_dir`` each
    successful snapshot is written to ``<output_dir>/<kind>.json``.
    """
    resolved = config or default_config()
    selected = _dedupe_kinds(kinds)
    if not selected:
        raise CollectError("No collection kinds requested.")
    if max_workers <= 0:
        raise CollectError("max_workers must be > 0.")

    resolved_run_id = run_id or new_run_id("archive")
    shared_limiter = limiter if limiter is not None else build_limiter(resolved.rate_limit, sleep=sleep)

    def archive_kind(kind: CollectionKind) -> tuple[Snapshot | None, ArchiveOutcome]:
        on_event = event_logger.sink(run_id=resolved_run_id, source_id=kind.value) if event_logger else None
        crawler: CollectionCrawler | None = None
        try:
            crawler = build_crawler(
                fetcher,
                kind,
                user_id,
                config=resolved,
                limiter=shared_limiter,
                cancel=cancel,
                sleep=sleep,
                on_event=on_event,
            )
            snapshot, stats = _archive_with_stats(crawler, SnapshotAssembler())
            snapshot_path = str(write_snapshot(snapshot, output_dir)) if output_dir is not None else None
        except ArchiveError as exc:
            logger.error(f"{kind.value}: archive failed: {exc}")
            stats = crawler.stats if crawler is not None else None
            return None, _failed_outcome(kind, exc, stats)

        return snapshot, ArchiveOutcome(
            kind=kind.value,
            ok=True,
            record_count=len(snapshot.records),
            pages=stats.pages_fetched,
            retries=stats.retries,
            duplicates_dropped=stats.duplicates_dropped,
            snapshot_path=snapshot_path,
        )

    results: dict[CollectionKind, tuple[Snapshot | None, ArchiveOutcome]] = {}
    if max_workers == 1 or len(selected) == 1:
        for kind in selected:
            results[kind] = archive_kind(kind)
    else:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(selected))) as executor:
            futures = {executor.submit(archive_kind, kind): kind for kind in selected}
            for future in as_completed(futures):
                results[futures[future]] = future.result()

    # Report in request order regardless of completion order.
    snapshots = tuple(results[kind][0] for kind in selected if results[kind][0] is not None)
    outcomes = tuple(results[kind][1] for kind in selected)
    result = ArchiveRunResult(run_id=resolved_run_id, snapshots=snapshots, outcomes=outcomes)
    logger.info(
        f"Archive run {resolved_run_id}: {result.succeeded} succeeded, {result.failed} failed, "
        f"{result.total_records} record(s)"
    )
    return result


def _archive_with_stats(
    crawler: CollectionCrawler, assembler: SnapshotAssembler
) -> tuple[Snapshot, CrawlStats]:
    snapshot = assembler.assemble(crawler, crawler.kind)
    return snapshot, crawler.stats


def _failed_outcome(kind: CollectionKind, error: ArchiveError, stats: CrawlStats | None) -> ArchiveOutcome:
    return ArchiveOutcome(
        kind=kind.value,
        ok=False,
        record_count=0,
        pages=stats.pages_fetched if stats is not None else 0,
        retries=stats.retries if stats is not None else 0,
        duplicates_dropped=stats.duplicates_dropped if stats is not None else 0,
        error=redact_text(str(error)),
        error_type=type(error).__name__,
    )


def _dedupe_kinds(kinds: Iterable[CollectionKind]) -> tuple[CollectionKind, ...]:
    selected: list[CollectionKind] = []
    for kind in kinds:
        resolved = CollectionKind(kind)
        if resolved not in selected:
            selected.append(resolved)
    return tuple(selected)


def new_run_id(prefix: str) -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    return f"{prefix}-{stamp}"
