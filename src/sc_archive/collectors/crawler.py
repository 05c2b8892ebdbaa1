"""Cursor-following crawler for one collection endpoint."""

from __future__ import annotations

from collections.abc import Iterator
import logging
import time
from typing import Any, Callable

import httpx

from sc_archive.collectors.base import (
    CancellationToken,
    CrawlState,
    CrawlStats,
    DetailFetcher,
    PageFetcher,
)
from sc_archive.diagnostics.events import (
    CRAWL_DONE,
    CRAWL_FAILED,
    DUPLICATES_DROPPED,
    PAGE_DECODED,
    PAUSED_AFTER_ERROR,
    PLAYLIST_EXPANDED,
    RATE_LIMIT_WAIT,
    CrawlEventSink,
)
from sc_archive.diagnostics.redact import redact_text
from sc_archive.endpoints import playlist_detail_endpoint
from sc_archive.errors import ArchiveError, CollectError, CrawlAborted, DecodeError
from sc_archive.extract.base import PageDecoder
from sc_archive.extract.pages import EntityDecoder, decode_playlist_detail
from sc_archive.models import CollectionKind, PageRequest, PageResponse, Record
from sc_archive.ratelimit import RateLimiter
from sc_archive.retry import Classification, RetryPolicy, Verdict

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 200

SleepFn = Callable[[float], None]


class CollectionCrawler:
    """Walk every page of one collection and yield its records in server order.

    The crawler is a single-pass iterable. Records are produced page by page as
    they are decoded; iterating a second time raises CollectError, so a repeat
    pass needs a fresh crawler.

    Each fetch is gated by the rate limiter and each outcome is classified by
    the retry policy. Retryable failures are retried in place after a backoff
    sleep; fatal ones move the crawl to FAILED and propagate to the consumer.
    Records whose id was already emitted in this crawl are dropped, which
    covers pages that repeat the previous page's tail.

    With a ``detail_fetcher`` each playlist listed on a page is replaced by
    its ``playlists/{id}`` detail before it is yielded. Detail requests go
    through the same limiter and retry policy as page requests.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        endpoint: str,
        kind: CollectionKind,
        *,
        decoder: PageDecoder | None = None,
        limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        cancel: CancellationToken | None = None,
        sleep: SleepFn = time.sleep,
        on_event: CrawlEventSink | None = None,
        detail_fetcher: DetailFetcher | None = None,
    ) -> None:
        if not endpoint or not endpoint.strip():
            raise CollectError("Crawler endpoint must be a non-empty string.")
        if page_size <= 0:
            raise CollectError("page_size must be positive.")
        if detail_fetcher is not None and CollectionKind(kind) is not CollectionKind.PLAYLISTS:
            raise CollectError("Detail expansion only applies to the playlists collection.")

        self._fetcher = fetcher
        self._endpoint = endpoint.strip()
        self._kind = CollectionKind(kind)
        self._decoder = decoder or EntityDecoder()
        self._limiter = limiter
        self._retry = retry_policy or RetryPolicy()
        self._page_size = page_size
        self._cancel = cancel
        self._sleep = sleep
        self._on_event = on_event
        self._detail_fetcher = detail_fetcher

        self._state = CrawlState.INIT
        self._consumed = False
        self._pages_fetched = 0
        self._records_emitted = 0
        self._duplicates_dropped = 0
        self._retries = 0
        self._cursors_followed = 0
        self._details_fetched = 0

    @property
    def kind(self) -> CollectionKind:
        return self._kind

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def state(self) -> CrawlState:
        return self._state

    @property
    def stats(self) -> CrawlStats:
        return CrawlStats(
            endpoint=self._endpoint,
            state=self._state,
            pages_fetched=self._pages_fetched,
            records_emitted=self._records_emitted,
            duplicates_dropped=self._duplicates_dropped,
            retries=self._retries,
            cursors_followed=self._cursors_followed,
            details_fetched=self._details_fetched,
        )

    def __iter__(self) -> Iterator[Record]:
        if self._consumed:
            raise CollectError(
                f"Crawl of '{self._endpoint}' was already consumed; start a new crawler for another pass."
            )
        self._consumed = True
        return self._crawl()

    def _crawl(self) -> Iterator[Record]:
        cursor: str | None = None
        seen_ids: set[int] = set()
        seen_cursors: set[str] = set()

        try:
            while True:
                page = self._fetch_page(PageRequest(self._endpoint, cursor, self._page_size))
                self._pages_fetched += 1

                fresh = list(_unseen(page.items, seen_ids))
                dropped = len(page.items) - len(fresh)
                logger.debug(
                    f"{self._kind.value}: page {self._pages_fetched} decoded with {len(page.items)} record(s)"
                )
                self._emit(
                    PAGE_DECODED,
                    page=self._pages_fetched,
                    count=len(fresh),
                    has_next=page.next_cursor is not None,
                )
                if dropped:
                    self._duplicates_dropped += dropped
                    logger.info(
                        f"{self._kind.value}: dropped {dropped} repeated record(s) on page {self._pages_fetched}"
                    )
                    self._emit(DUPLICATES_DROPPED, page=self._pages_fetched, count=dropped)

                for record in fresh:
                    if self._detail_fetcher is not None:
                        record = self._expand(record)
                    self._records_emitted += 1
                    yield record

                if page.next_cursor is None:
                    break
                if page.next_cursor in seen_cursors:
                    raise DecodeError(
                        f"Server repeated cursor {redact_text(page.next_cursor)!r}; "
                        "refusing to loop over already-fetched pages."
                    )
                seen_cursors.add(page.next_cursor)
                cursor = page.next_cursor
                self._cursors_followed += 1
        except GeneratorExit:
            # Consumer stopped early; the crawl never reached DONE.
            self._state = CrawlState.FAILED
            logger.debug(f"{self._kind.value}: crawl closed by consumer before exhaustion")
            raise
        except Exception as exc:
            self._state = CrawlState.FAILED
            logger.warning(f"{self._kind.value}: crawl failed after {self._pages_fetched} page(s): {exc}")
            self._emit(CRAWL_FAILED, error=type(exc).__name__, message=str(exc), pages=self._pages_fetched)
            raise

        self._state = CrawlState.DONE
        logger.info(
            f"{self._kind.value}: crawl done, {self._records_emitted} record(s) "
            f"over {self._pages_fetched} page(s)"
        )
        self._emit(CRAWL_DONE, pages=self._pages_fetched, records=self._records_emitted)

    def _fetch_page(self, request: PageRequest) -> PageResponse:
        outcome = self._request(lambda: self._fetcher.fetch(request))
        self._state = CrawlState.DECODING
        return self._decode(outcome)

    def _expand(self, playlist: Record) -> Record:
        endpoint = playlist_detail_endpoint(playlist.id)
        outcome = self._request(lambda: self._detail_fetcher.fetch_detail(endpoint))
        self._state = CrawlState.DECODING
        detail = decode_playlist_detail(_body_of(outcome))
        if detail.id != playlist.id:
            raise DecodeError(f"Playlist detail for {playlist.id} describes playlist {detail.id}.")

        self._details_fetched += 1
        track_count = len(detail.tracks or ())
        logger.debug(f"{self._kind.value}: playlist {playlist.id} expanded with {track_count} track(s)")
        self._emit(PLAYLIST_EXPANDED, playlist_id=playlist.id, tracks=track_count)
        return detail

    def _request(self, send: Callable[[], Any]) -> Any:
        """Gate, send and classify until success; returns the successful outcome."""
        attempt = 0
        while True:
            self._check_cancelled()
            self._state = CrawlState.FETCHING

            if self._limiter is not None:
                waited = self._limiter.admit()
                if waited > 0:
                    self._emit(RATE_LIMIT_WAIT, seconds=round(waited, 3))

            attempt += 1
            try:
                outcome: Any = send()
            except (httpx.RequestError, ArchiveError) as exc:
                outcome = exc

            classification = self._retry.classify(outcome)
            if classification.ok:
                return outcome

            error = classification.error
            if classification.verdict is Verdict.FATAL:
                raise error from _cause(outcome, error)

            if not self._retry.should_retry(attempt):
                raise self._retry.exhausted(classification, attempt) from error

            delay = self._retry.backoff_delay(attempt, classification.retry_after)
            self._retries += 1
            logger.warning(
                f"{self._kind.value}: {error} (attempt {attempt}/{self._retry.max_attempts}). "
                f"Retrying in {delay:.1f}s..."
            )
            self._emit(
                PAUSED_AFTER_ERROR,
                attempt=attempt,
                seconds=round(delay, 3),
                status=_status_of(classification),
                error=type(error).__name__,
            )
            self._sleep(delay)

    def _decode(self, outcome: Any) -> PageResponse:
        if isinstance(outcome, PageResponse):
            return outcome
        return self._decoder.decode(_body_of(outcome), self._kind)

    def _check_cancelled(self) -> None:
        if self._cancel is not None and self._cancel.is_cancelled():
            raise CrawlAborted(
                f"Crawl of {self._kind.value} cancelled after {self._pages_fetched} page(s)."
            )

    def _emit(self, event_type: str, **payload: Any) -> None:
        if self._on_event is None:
            return
        self._on_event(event_type, {"kind": self._kind.value, "endpoint": self._endpoint, **payload})


def _unseen(records: tuple[Record, ...], seen_ids: set[int]) -> Iterator[Record]:
    for record in records:
        if record.id in seen_ids:
            continue
        seen_ids.add(record.id)
        yield record


def _body_of(outcome: Any) -> Any:
    if isinstance(outcome, httpx.Response):
        return outcome.content
    return outcome


def _cause(outcome: Any, error: BaseException | None) -> BaseException | None:
    if isinstance(outcome, BaseException) and outcome is not error:
        return outcome
    return None


def _status_of(classification: Classification) -> int | None:
    return getattr(classification.error, "status", None)
