"""Outcome classification and backoff schedule."""

from __future__ import annotations

from datetime import datetime, timezone
import random

import httpx
import pytest

from sc_archive.errors import (
    ApiError,
    AuthError,
    CollectError,
    ConfigError,
    DecodeError,
    NetworkError,
    RateLimitExceeded,
    ServerError,
)
from sc_archive.models import PageResponse
from sc_archive.retry import RetryPolicy, Verdict, parse_retry_after

URL = "https://api-v2.soundcloud.com/users/1/track_likes?client_id=secret-client&limit=200"


def _response(status: int, headers: dict[str, str] | None = None) -> httpx.Response:
    return httpx.Response(status, headers=headers, request=httpx.Request("GET", URL))


class _FixedRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__(0)
        self._value = value

    def random(self) -> float:
        return self._value


def test_classify_success_outcomes() -> None:
    policy = RetryPolicy()

    assert policy.classify(_response(200)).verdict is Verdict.SUCCESS
    assert policy.classify(PageResponse(items=())).ok
    assert policy.classify({"collection": []}).ok


@pytest.mark.parametrize(
    ("status", "verdict", "error_type"),
    [
        (401, Verdict.FATAL, AuthError),
        (403, Verdict.FATAL, AuthError),
        (404, Verdict.FATAL, ApiError),
        (429, Verdict.RETRYABLE, ApiError),
        (500, Verdict.RETRYABLE, ServerError),
        (503, Verdict.RETRYABLE, ServerError),
        (302, Verdict.FATAL, ApiError),
    ],
)
def test_classify_http_status(status: int, verdict: Verdict, error_type: type) -> None:
    classification = RetryPolicy().classify(_response(status))

    assert classification.verdict is verdict
    assert isinstance(classification.error, error_type)


def test_classify_error_message_omits_query_string() -> None:
    classification = RetryPolicy().classify(_response(404))

    assert "secret-client" not in str(classification.error)
    assert "users/1/track_likes" in str(classification.error)


def test_classify_429_carries_retry_after_hint() -> None:
    classification = RetryPolicy().classify(_response(429, {"Retry-After": "7"}))

    assert classification.verdict is Verdict.RETRYABLE
    assert classification.retry_after == 7.0
    assert isinstance(classification.error, ApiError)
    assert classification.error.status == 429


def test_classify_transport_failures_as_retryable_network_errors() -> None:
    policy = RetryPolicy()
    request = httpx.Request("GET", URL)

    timeout = policy.classify(httpx.ReadTimeout("timed out", request=request))
    refused = policy.classify(httpx.ConnectError("refused", request=request))

    assert timeout.verdict is Verdict.RETRYABLE
    assert isinstance(timeout.error, NetworkError)
    assert refused.verdict is Verdict.RETRYABLE
    assert isinstance(refused.error, NetworkError)


def test_classify_other_request_errors() -> None:
    policy = RetryPolicy()
    request = httpx.Request("GET", URL)

    corrupt = policy.classify(httpx.DecodingError("Error -3 while decompressing data", request=request))
    redirects = policy.classify(httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=request))

    assert corrupt.verdict is Verdict.FATAL
    assert isinstance(corrupt.error, DecodeError)
    assert redirects.verdict is Verdict.RETRYABLE
    assert isinstance(redirects.error, NetworkError)


def test_classify_archive_errors() -> None:
    policy = RetryPolicy()

    assert policy.classify(NetworkError("reset")).verdict is Verdict.RETRYABLE
    assert policy.classify(ServerError("boom", status=502)).verdict is Verdict.RETRYABLE
    assert policy.classify(ApiError("slow down", status=429, retry_after=3.0)).retry_after == 3.0
    assert policy.classify(DecodeError("bad page")).verdict is Verdict.FATAL
    assert policy.classify(CollectError("misuse")).verdict is Verdict.FATAL


def test_classify_rejects_unknown_outcomes() -> None:
    with pytest.raises(TypeError):
        RetryPolicy().classify(42)


def test_backoff_delay_doubles_and_caps_without_jitter() -> None:
    policy = RetryPolicy(base_delay_seconds=2.0, max_delay_seconds=10.0, jitter_ratio=0.0)

    assert [policy.backoff_delay(attempt) for attempt in range(1, 6)] == [2.0, 4.0, 8.0, 10.0, 10.0]


def test_backoff_delay_adds_proportional_jitter() -> None:
    policy = RetryPolicy(base_delay_seconds=2.0, jitter_ratio=0.1, rng=_FixedRandom(0.5))

    assert policy.backoff_delay(1) == pytest.approx(2.1)
    assert policy.backoff_delay(3) == pytest.approx(8.4)


def test_backoff_delay_honors_retry_after_hint() -> None:
    policy = RetryPolicy(base_delay_seconds=2.0, max_delay_seconds=60.0)

    assert policy.backoff_delay(1, retry_after=12.0) == 12.0


def test_backoff_delay_rejects_hint_beyond_max_delay() -> None:
    policy = RetryPolicy(max_delay_seconds=30.0)

    with pytest.raises(RateLimitExceeded, match="retry after"):
        policy.backoff_delay(1, retry_after=120.0)


def test_should_retry_caps_attempts() -> None:
    policy = RetryPolicy(max_attempts=3)

    assert policy.should_retry(1)
    assert policy.should_retry(2)
    assert not policy.should_retry(3)


def test_exhausted_builds_rate_limit_error() -> None:
    policy = RetryPolicy()
    classification = policy.classify(_response(503))

    error = policy.exhausted(classification, 5)

    assert isinstance(error, RateLimitExceeded)
    assert "5 attempt(s)" in str(error)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0},
        {"base_delay_seconds": -1.0},
        {"jitter_ratio": 1.5},
    ],
)
def test_policy_rejects_invalid_parameters(kwargs: dict[str, float]) -> None:
    with pytest.raises(ConfigError):
        RetryPolicy(**kwargs)


def test_parse_retry_after_accepts_seconds_and_http_dates() -> None:
    now = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    assert parse_retry_after("30") == 30.0
    assert parse_retry_after("Sun, 01 Mar 2026 12:00:45 GMT", now=now) == pytest.approx(45.0)
    assert parse_retry_after("Sun, 01 Mar 2026 11:00:00 GMT", now=now) == 0.0
    assert parse_retry_after("soon") is None
    assert parse_retry_after(None) is None
    assert parse_retry_after("  ") is None
