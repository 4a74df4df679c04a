"""Shared utilities for the seller scraper"""

from .logging_config import setup_logging

from .checkpoint import (
    save_checkpoint,
    load_checkpoint,
)

from .errors import (
    ScraperError,
    ConfigError,
    LedgerError,
    ResultSinkError,
)

from .seller_schema import (
    CSV_COLUMNS,
    FIELD_NAMES,
    FetchOutcome,
    LedgerStatus,
    OutcomeKind,
    ProgressEntry,
    SellerRecord,
)

from .ledger import ProgressLedger

from .export_service import CsvResultSink

from .backoff import (
    ExponentialBackoff,
    FailureKind,
    LinearBackoff,
    RetryPolicy,
    ServerDirectedBackoff,
)

from .http import (
    DEFAULT_USER_AGENTS,
    get_api_headers,
    log_safe,
)

from .fetch_client import (
    AttemptFailure,
    SellerFetchClient,
)

from .batch_controller import (
    BatchController,
    RunContext,
    RunSummary,
    install_signal_handlers,
)

from .sentry_integration import (
    init_sentry,
    capture_scraper_error,
    flush as sentry_flush,
)

__all__ = [
    # Logging and persistence
    'setup_logging',
    'save_checkpoint',
    'load_checkpoint',
    # Errors
    'ScraperError',
    'ConfigError',
    'LedgerError',
    'ResultSinkError',
    # Seller schema
    'CSV_COLUMNS',
    'FIELD_NAMES',
    'FetchOutcome',
    'LedgerStatus',
    'OutcomeKind',
    'ProgressEntry',
    'SellerRecord',
    # Ledger and results file
    'ProgressLedger',
    'CsvResultSink',
    # Retry policies
    'ExponentialBackoff',
    'FailureKind',
    'LinearBackoff',
    'RetryPolicy',
    'ServerDirectedBackoff',
    # HTTP helpers
    'DEFAULT_USER_AGENTS',
    'get_api_headers',
    'log_safe',
    # Fetching and batching
    'AttemptFailure',
    'SellerFetchClient',
    'BatchController',
    'RunContext',
    'RunSummary',
    'install_signal_handlers',
    # Sentry integration
    'init_sentry',
    'capture_scraper_error',
    'sentry_flush',
]
