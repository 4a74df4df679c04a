"""Tests for retry budget and backoff policies."""

from datetime import datetime, timezone

import pytest

from src.shared.backoff import (
    ExponentialBackoff,
    FailureKind,
    LinearBackoff,
    RetryPolicy,
    ServerDirectedBackoff,
    parse_retry_after,
)


class TestLinearBackoff:

    def test_base_times_attempt(self):
        policy = LinearBackoff(4.0)
        assert [policy.delay(n) for n in (1, 2, 3)] == [4.0, 8.0, 12.0]


class TestExponentialBackoff:

    def test_doubles_until_cap(self):
        policy = ExponentialBackoff(base=30.0, cap=300.0)
        assert [policy.delay(n) for n in range(1, 7)] == [30.0, 60.0, 120.0, 240.0, 300.0, 300.0]


class TestServerDirectedBackoff:

    def test_uses_retry_after(self):
        assert ServerDirectedBackoff().delay(1, retry_after='12') == 12.0

    def test_caps_retry_after(self):
        assert ServerDirectedBackoff(cap=300.0).delay(1, retry_after='3600') == 300.0

    def test_falls_back_without_header(self):
        policy = ServerDirectedBackoff(ExponentialBackoff(base=10.0, cap=100.0), cap=100.0)
        assert policy.delay(2) == 20.0


class TestParseRetryAfter:

    def test_seconds(self):
        assert parse_retry_after('7') == 7.0
        assert parse_retry_after(' 2.5 ') == 2.5

    def test_negative_clamped(self):
        assert parse_retry_after('-3') == 0.0

    def test_http_date(self):
        now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert parse_retry_after('Mon, 01 Jan 2024 12:00:30 GMT', now=now) == 30.0

    def test_http_date_in_past(self):
        now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert parse_retry_after('Mon, 01 Jan 2024 11:00:00 GMT', now=now) == 0.0

    @pytest.mark.parametrize('value', [None, '', 'soon'])
    def test_missing_or_invalid(self, value):
        assert parse_retry_after(value) is None


class TestRetryPolicy:
    """Budget decisions."""

    def test_delays_are_non_decreasing_until_budget(self):
        policy = RetryPolicy(max_attempts=4, base_delay=4.0)
        delays = [policy.next_delay(FailureKind.TRANSIENT_TRANSPORT, n) for n in (1, 2, 3)]

        assert delays == [4.0, 8.0, 12.0]
        assert policy.next_delay(FailureKind.TRANSIENT_TRANSPORT, 4) is None

    def test_single_attempt_never_retries(self):
        policy = RetryPolicy(max_attempts=1)
        assert policy.next_delay(FailureKind.UNEXPECTED_STATUS, 1) is None

    @pytest.mark.parametrize('kind', [FailureKind.NOT_FOUND, FailureKind.FATAL_LOCAL])
    def test_non_retryable_kinds(self, kind):
        assert RetryPolicy(max_attempts=5).next_delay(kind, 1) is None

    def test_blocked_retried_once(self):
        policy = RetryPolicy(max_attempts=5)
        assert policy.next_delay(FailureKind.BLOCKED, 1, blocked_count=1) == 4.0
        assert policy.next_delay(FailureKind.BLOCKED, 2, blocked_count=2) is None

    def test_rate_limited_honours_retry_after(self):
        policy = RetryPolicy(max_attempts=3)
        assert policy.next_delay(FailureKind.RATE_LIMITED, 1, retry_after='7') == 7.0
        assert policy.next_delay(FailureKind.RATE_LIMITED, 2) == 60.0

    def test_invalid_budget(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)
