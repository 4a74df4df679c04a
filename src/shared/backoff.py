"""Retry budget and backoff policies for seller fetches.

Each failure kind maps to a small policy object that turns an attempt number
(1-based) into a wait in seconds:

- LinearBackoff: base * attempt (transport errors, unexpected status,
  blocked or anomalous pages)
- ExponentialBackoff: base * 2 ** (attempt - 1), capped
- ServerDirectedBackoff: the server's Retry-After if present, otherwise a
  fallback policy (used for 429 responses)

RetryPolicy.next_delay() decides whether another attempt is allowed and how
long to wait before it.
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Dict, Optional, Union

from src.shared.constants import RETRY

__all__ = [
    'ExponentialBackoff',
    'FailureKind',
    'LinearBackoff',
    'RetryPolicy',
    'ServerDirectedBackoff',
    'parse_retry_after',
]


class FailureKind(str, Enum):
    """Why a fetch attempt did not produce a terminal result."""
    NOT_FOUND = 'not_found'
    RATE_LIMITED = 'rate_limited'
    BLOCKED = 'blocked'
    TRANSIENT_TRANSPORT = 'transient_transport'
    UNEXPECTED_STATUS = 'unexpected_status'
    FATAL_LOCAL = 'fatal_local'


NON_RETRYABLE_KINDS = frozenset({FailureKind.NOT_FOUND, FailureKind.FATAL_LOCAL})


class LinearBackoff:
    """Wait base * attempt seconds."""

    def __init__(self, base: float = RETRY.BASE_DELAY):
        self.base = base

    def delay(self, attempt: int, retry_after: Optional[str] = None) -> float:
        return float(self.base * max(1, attempt))


class ExponentialBackoff:
    """Wait base * 2 ** (attempt - 1) seconds, never more than cap."""

    def __init__(self, base: float = RETRY.RATE_LIMIT_BASE_WAIT, cap: float = RETRY.RATE_LIMIT_MAX_WAIT):
        self.base = base
        self.cap = cap

    def delay(self, attempt: int, retry_after: Optional[str] = None) -> float:
        return float(min(self.base * 2 ** max(0, attempt - 1), self.cap))


class ServerDirectedBackoff:
    """Honour a Retry-After value, else defer to the fallback policy."""

    def __init__(self, fallback: Optional[ExponentialBackoff] = None, cap: float = RETRY.RATE_LIMIT_MAX_WAIT):
        self.fallback = fallback or ExponentialBackoff(cap=cap)
        self.cap = cap

    def delay(self, attempt: int, retry_after: Optional[str] = None) -> float:
        suggested = parse_retry_after(retry_after)
        if suggested is None:
            return self.fallback.delay(attempt)
        return float(min(suggested, self.cap))


BackoffStrategy = Union[LinearBackoff, ExponentialBackoff, ServerDirectedBackoff]


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """Parse a Retry-After header (delta-seconds or HTTP date).

    Returns:
        Seconds to wait (never negative), or None if absent/unparseable
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


class RetryPolicy:
    """Retry budget plus one backoff strategy per failure kind.

    Usage:
        policy = RetryPolicy(max_attempts=2)
        wait = policy.next_delay(FailureKind.TRANSIENT_TRANSPORT, attempt=1)
        if wait is None:
            ...  # give up
    """

    def __init__(
        self,
        max_attempts: int = RETRY.MAX_ATTEMPTS,
        base_delay: float = RETRY.BASE_DELAY,
        rate_limit_base_wait: float = RETRY.RATE_LIMIT_BASE_WAIT,
        rate_limit_max_wait: float = RETRY.RATE_LIMIT_MAX_WAIT,
        blocked_retries: int = RETRY.BLOCKED_RETRIES,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.blocked_retries = blocked_retries
        linear = LinearBackoff(base_delay)
        self.strategies: Dict[FailureKind, BackoffStrategy] = {
            FailureKind.RATE_LIMITED: ServerDirectedBackoff(
                ExponentialBackoff(rate_limit_base_wait, rate_limit_max_wait),
                cap=rate_limit_max_wait,
            ),
            FailureKind.BLOCKED: linear,
            FailureKind.TRANSIENT_TRANSPORT: linear,
            FailureKind.UNEXPECTED_STATUS: linear,
        }

    def next_delay(
        self,
        kind: FailureKind,
        attempt: int,
        blocked_count: int = 0,
        retry_after: Optional[str] = None,
    ) -> Optional[float]:
        """Decide whether to retry after a failed attempt.

        Args:
            kind: Failure classification of the attempt
            attempt: 1-based number of the attempt that just failed
            blocked_count: Blocked pages seen so far for this id, this one included
            retry_after: Raw Retry-After header value, if any

        Returns:
            Seconds to wait before the next attempt, or None to give up
        """
        if kind in NON_RETRYABLE_KINDS:
            return None
        if attempt >= self.max_attempts:
            return None
        if kind == FailureKind.BLOCKED and blocked_count > self.blocked_retries:
            return None
        return self.strategies[kind].delay(attempt, retry_after)
