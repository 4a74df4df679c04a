"""Delay and pause utilities for rate limiting.

This module provides the cooperative sleeps used between items or batches
and before retries, so that the event loop stays free while waiting.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

__all__ = [
    'Sleeper',
    'pace',
]


Sleeper = Callable[[float], Awaitable[None]]


async def pace(seconds: float, sleep: Optional[Sleeper] = None, reason: str = 'pacing') -> None:
    """Suspend for the given number of seconds.

    Args:
        seconds: Delay in seconds; zero or negative returns immediately
        sleep: Sleep coroutine (defaults to asyncio.sleep)
        reason: Short label for the debug log line
    """
    if seconds <= 0:
        return
    sleeper = sleep or asyncio.sleep
    logging.debug(f"Sleeping {seconds:.2f}s ({reason})")
    await sleeper(seconds)
