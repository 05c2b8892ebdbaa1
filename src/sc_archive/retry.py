"""
Failure classification and retry/backoff policy for page fetches.

Outcome taxonomy:
- network failure (timeout, reset, DNS)  -> RETRYABLE NetworkError
- other request failures (redirect loop) -> RETRYABLE NetworkError
- undecodable body (bad gzip/brotli)     -> FATAL DecodeError
- HTTP 429                               -> RETRYABLE ApiError, honoring Retry-After
- HTTP 5xx                               -> RETRYABLE ServerError
- HTTP 401/403                           -> FATAL AuthError
- other HTTP 4xx / unexpected codes      -> FATAL ApiError
- 2xx, raw page mapping, PageResponse    -> SUCCESS
- DecodeError and other ArchiveErrors    -> FATAL
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
import logging
import random
from typing import Any, Optional

import httpx

from .errors import (
    ApiError,
    ArchiveError,
    AuthError,
    ConfigError,
    DecodeError,
    NetworkError,
    RateLimitExceeded,
    ServerError,
)
from .models import PageResponse

logger = logging.getLogger(__name__)


class Verdict(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(frozen=True)
class Classification:
    verdict: Verdict
    error: Optional[ArchiveError] = None
    retry_after: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.verdict is Verdict.SUCCESS


_SUCCESS = Classification(verdict=Verdict.SUCCESS)


class RetryPolicy:
    """
    Decide whether a fetch outcome succeeded, may be retried, or is fatal,
    and how long to back off before the next attempt.

    Usage:
        policy = RetryPolicy(max_attempts=5)
        result = policy.classify(response_or_exception)
        if result.verdict is Verdict.RETRYABLE and policy.should_retry(attempt):
            sleep(policy.backoff_delay(attempt, result.retry_after))
    """

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay_seconds: float = 2.0,
        max_delay_seconds: float = 60.0,
        jitter_ratio: float = 0.1,
        *,
        rng: Optional[random.Random] = None,
    ):
        if max_attempts <= 0:
            raise ConfigError("max_attempts must be > 0.")
        if base_delay_seconds < 0 or max_delay_seconds < 0:
            raise ConfigError("backoff delays must be >= 0.")
        if jitter_ratio < 0 or jitter_ratio > 1:
            raise ConfigError("jitter_ratio must be between 0 and 1.")

        self.max_attempts = max_attempts
        self.base_delay_seconds = float(base_delay_seconds)
        self.max_delay_seconds = float(max_delay_seconds)
        self.jitter_ratio = float(jitter_ratio)
        self._rng = rng if rng is not None else random.Random()

    def classify(self, outcome: Any) -> Classification:
        """Classify an httpx response, decoded page, or raised exception."""
        if isinstance(outcome, (PageResponse, Mapping)):
            return _SUCCESS
        if isinstance(outcome, httpx.Response):
            return _classify_response(outcome)
        if isinstance(outcome, httpx.TimeoutException):
            return Classification(Verdict.RETRYABLE, NetworkError(f"Request timed out: {outcome}"))
        if isinstance(outcome, httpx.TransportError):
            return Classification(Verdict.RETRYABLE, NetworkError(f"Connection failed: {outcome}"))
        if isinstance(outcome, httpx.DecodingError):
            return Classification(Verdict.FATAL, DecodeError(f"Response body could not be decoded: {outcome}"))
        if isinstance(outcome, httpx.RequestError):
            return Classification(Verdict.RETRYABLE, NetworkError(f"Request failed: {outcome}"))
        if isinstance(outcome, (NetworkError, ServerError)):
            return Classification(Verdict.RETRYABLE, outcome)
        if isinstance(outcome, ApiError) and outcome.status == 429:
            return Classification(Verdict.RETRYABLE, outcome, outcome.retry_after)
        if isinstance(outcome, ArchiveError):
            return Classification(Verdict.FATAL, outcome)
        raise TypeError(f"Cannot classify outcome of type {type(outcome).__name__}")

    def should_retry(self, attempt: int) -> bool:
        """True while another attempt fits in the per-request budget."""
        return attempt < self.max_attempts

    def backoff_delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """
        Delay before the attempt following ``attempt`` (1-based).

        A server hint wins over the exponential schedule. Hints longer than
        max_delay_seconds exhaust the budget rather than block for that long.
        """
        if retry_after is not None:
            if retry_after > self.max_delay_seconds:
                raise RateLimitExceeded(
                    f"Server asked to retry after {retry_after:.1f}s, "
                    f"exceeding max delay of {self.max_delay_seconds:.1f}s"
                )
            return max(0.0, retry_after)

        delay = min(self.base_delay_seconds * (2 ** max(0, attempt - 1)), self.max_delay_seconds)
        jitter = delay * self.jitter_ratio * self._rng.random()
        return delay + jitter

    def exhausted(self, classification: Classification, attempts: int) -> RateLimitExceeded:
        """Build the fatal error raised once retries are spent."""
        return RateLimitExceeded(
            f"Retry budget exhausted after {attempts} attempt(s): {classification.error}"
        )


def parse_retry_after(value: Optional[str], *, now: Optional[datetime] = None) -> Optional[float]:
    """Parse a Retry-After header given as delta-seconds or an HTTP date."""
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring unparseable Retry-After header: {raw!r}")
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    reference = now or datetime.now(timezone.utc)
    return max(0.0, (when - reference).total_seconds())


def _classify_response(response: httpx.Response) -> Classification:
    status = response.status_code
    if 200 <= status < 300:
        return _SUCCESS

    reason = f"HTTP {status} {response.reason_phrase}".strip()
    url = _safe_url(response)

    if status in (401, 403):
        return Classification(Verdict.FATAL, AuthError(f"{reason} for {url}: check oauth token and client id"))
    if status == 429:
        retry_after = parse_retry_after(response.headers.get("Retry-After"))
        return Classification(
            Verdict.RETRYABLE,
            ApiError(f"{reason} for {url}", status=status, retry_after=retry_after),
            retry_after,
        )
    if status >= 500:
        return Classification(Verdict.RETRYABLE, ServerError(f"{reason} for {url}", status=status))
    return Classification(Verdict.FATAL, ApiError(f"{reason} for {url}", status=status))


def _safe_url(response: httpx.Response) -> str:
    try:
        url = response.request.url
    except RuntimeError:
        return "<unknown url>"
    # Drop the query string; it carries the client id and opaque cursors.
    return str(url).split("?", 1)[0]
