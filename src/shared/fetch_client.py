"""Shared retry loop for per-seller fetch clients.

A fetch client turns one seller id into exactly one FetchOutcome. Concrete
clients implement build_url() and _attempt(); an attempt either returns a
terminal FetchOutcome or an AttemptFailure describing why it should (maybe)
be retried. The retry budget and the backoff between attempts come from a
RetryPolicy, so no sleep calls are scattered through the clients.

Clients hold no run state (ledger, result file), so one instance can serve
every concurrent fetch of a batch.
"""

import asyncio
import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Optional, Type, Union

from src.shared.backoff import FailureKind, RetryPolicy
from src.shared.delays import Sleeper, pace
from src.shared.http import redact_credentials
from src.shared.seller_schema import FetchOutcome

__all__ = [
    'AttemptFailure',
    'AttemptResult',
    'SellerFetchClient',
]


@dataclass
class AttemptFailure:
    """A non-terminal attempt result.

    Attributes:
        kind: Failure classification, selects the backoff policy
        reason: Human-readable reason, kept if retries run out
        retry_after: Raw Retry-After header value (rate limiting only)
    """
    kind: FailureKind
    reason: str
    retry_after: Optional[str] = None


AttemptResult = Union[FetchOutcome, AttemptFailure]


class SellerFetchClient:
    """Base class: bounded-retry fetch of one seller id.

    Usage:
        async with DiyApiClient(token) as client:
            outcome = await client.fetch(3958)
    """

    name = 'diy'

    def __init__(self, retry_policy: Optional[RetryPolicy] = None, sleep: Optional[Sleeper] = None):
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep or asyncio.sleep

    def build_url(self, seller_id: int) -> str:
        raise NotImplementedError

    async def _attempt(self, seller_id: int, url: str, attempt: int) -> AttemptResult:
        raise NotImplementedError

    async def open(self) -> None:
        """Acquire network resources. No-op by default."""

    async def close(self) -> None:
        """Release network resources. No-op by default."""

    async def __aenter__(self) -> 'SellerFetchClient':
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType]
    ) -> None:
        await self.close()

    async def fetch(self, seller_id: int) -> FetchOutcome:
        """Fetch one seller id, retrying per the policy.

        Never raises for per-seller problems; exhausted retries come back as
        a BLOCKED or error outcome carrying the last reason.
        """
        url = self.build_url(seller_id)
        blocked_count = 0
        attempt = 0

        while True:
            attempt += 1
            try:
                result = await self._attempt(seller_id, url, attempt)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logging.error(f"[seller {seller_id}] Unexpected error on attempt {attempt}: {e}", exc_info=True)
                result = AttemptFailure(FailureKind.TRANSIENT_TRANSPORT, redact_credentials(str(e)) or type(e).__name__)

            if isinstance(result, FetchOutcome):
                result.attempts = attempt
                return result

            if result.kind == FailureKind.BLOCKED:
                blocked_count += 1

            wait = self.retry_policy.next_delay(
                result.kind,
                attempt,
                blocked_count=blocked_count,
                retry_after=result.retry_after,
            )
            if wait is None:
                logging.warning(
                    f"[seller {seller_id}] Giving up after {attempt} attempt(s): {result.reason}"
                )
                return self._give_up(seller_id, url, result, attempt)

            logging.warning(
                f"[seller {seller_id}] {result.kind.value}: {result.reason}. "
                f"Waiting {wait:.1f}s (attempt {attempt}/{self.retry_policy.max_attempts})"
            )
            await pace(wait, self._sleep, reason=f"retry seller {seller_id}")

    @staticmethod
    def _give_up(seller_id: int, url: str, failure: AttemptFailure, attempts: int) -> FetchOutcome:
        if failure.kind == FailureKind.NOT_FOUND:
            return FetchOutcome.empty(seller_id, url, attempts=attempts)
        if failure.kind == FailureKind.BLOCKED:
            return FetchOutcome.blocked(seller_id, url, failure.reason, attempts=attempts)
        if failure.kind == FailureKind.FATAL_LOCAL:
            return FetchOutcome.fatal(seller_id, url, failure.reason, attempts=attempts)
        return FetchOutcome.transient(seller_id, url, failure.reason, attempts=attempts)
