"""Run-level exceptions.

Per-seller failures never raise; they are folded into a FetchOutcome by the
fetch clients. The exceptions below are for resource-level problems that
abort a run before any seller id is processed.
"""

__all__ = [
    'ConfigError',
    'LedgerError',
    'ResultSinkError',
    'ScraperError',
]


class ScraperError(Exception):
    """Base class for errors that abort a scrape run."""


class ConfigError(ScraperError):
    """Raised when the run configuration is invalid."""


class LedgerError(ScraperError):
    """Raised when the progress ledger cannot be read or written."""


class ResultSinkError(ScraperError):
    """Raised when the CSV result file cannot be created or appended to."""
