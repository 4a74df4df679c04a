"""Centralized constants for the verified seller scraper.

This module provides frozen dataclass-based configuration groups for all
magic numbers used throughout the codebase. Using dataclasses provides:
- Type safety and IDE autocompletion
- Immutability (frozen=True prevents accidental modification)
- Grouped related constants logically

Usage:
    from src.shared.constants import HTTP, RETRY, LEDGER

    timeout = HTTP.TIMEOUT
    flush_every = LEDGER.FLUSH_INTERVAL
"""

from dataclasses import dataclass

__all__ = [
    'BATCH',
    'BROWSER',
    'BatchDefaults',
    'BrowserDefaults',
    'EXTRACTION',
    'ExtractionDefaults',
    'HTTP',
    'HttpDefaults',
    'LEDGER',
    'LOGGING',
    'LedgerDefaults',
    'LoggingDefaults',
    'RETRY',
    'RetryDefaults',
]


@dataclass(frozen=True)
class HttpDefaults:
    """HTTP request configuration defaults.

    These values can be overridden in config/sellers.yaml.
    """

    TIMEOUT: int = 45
    """Per-attempt timeout in seconds (API request or page navigation)."""

    RENDER_WAIT: int = 8
    """Seconds to wait for the seller page to finish client-side rendering."""


@dataclass(frozen=True)
class RetryDefaults:
    """Retry budget and backoff settings for a single seller id."""

    MAX_ATTEMPTS: int = 2
    """Attempts per seller id before the outcome is surfaced as an error."""

    MIN_ATTEMPTS: int = 1

    MAX_ALLOWED_ATTEMPTS: int = 5

    BASE_DELAY: float = 4.0
    """Linear backoff base in seconds (delay = base * attempt)."""

    RATE_LIMIT_BASE_WAIT: float = 30.0
    """Base wait in seconds for 429 responses without Retry-After."""

    RATE_LIMIT_MAX_WAIT: float = 300.0
    """Upper bound for any rate-limit wait, server-suggested or not."""

    BLOCKED_RETRIES: int = 1
    """How many times a blocked/challenge page is retried."""


@dataclass(frozen=True)
class LedgerDefaults:
    """Progress ledger settings."""

    FLUSH_INTERVAL: int = 10
    """Flush the ledger every N processed ids."""


@dataclass(frozen=True)
class BatchDefaults:
    """Identifier range and pacing defaults."""

    FROM_ID: int = 1
    TO_ID: int = 10000

    DELAY: float = 2.0
    """Pause in seconds between items (serial) or batches (concurrent)."""

    CONCURRENCY: int = 1
    """Fetches in flight per batch; 1 means serial mode."""

    MAX_CONCURRENCY: int = 16


@dataclass(frozen=True)
class BrowserDefaults:
    """Playwright browser context settings."""

    LOCALE: str = 'en-GB'
    TIMEZONE: str = 'Europe/London'
    VIEWPORT_WIDTH: int = 1366
    VIEWPORT_HEIGHT: int = 900


@dataclass(frozen=True)
class ExtractionDefaults:
    """Field extraction limits."""

    MAX_BUSINESS_NAME_LENGTH: int = 120
    BUSINESS_NAME_MAX_LINES: int = 3
    VAT_MAX_LINES: int = 3
    ADDRESS_MAX_LINES: int = 8
    SHIPPED_FROM_MAX_LINES: int = 2


@dataclass(frozen=True)
class LoggingDefaults:
    """Logging configuration.

    Controls log file rotation settings.
    """

    MAX_BYTES: int = 10 * 1024 * 1024
    """Maximum log file size before rotation (10MB)."""

    BACKUP_COUNT: int = 5
    """Number of backup log files to keep."""


# Singleton instances for easy import
HTTP = HttpDefaults()
RETRY = RetryDefaults()
LEDGER = LedgerDefaults()
BATCH = BatchDefaults()
BROWSER = BrowserDefaults()
EXTRACTION = ExtractionDefaults()
LOGGING = LoggingDefaults()
