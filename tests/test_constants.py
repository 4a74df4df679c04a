"""Tests for centralized constants module."""

import pytest
from dataclasses import FrozenInstanceError

from src.shared.constants import BATCH, BROWSER, EXTRACTION, HTTP, LEDGER, LOGGING, RETRY


class TestDefaults:
    """Documented defaults."""

    def test_http_defaults(self):
        assert HTTP.TIMEOUT == 45
        assert HTTP.RENDER_WAIT == 8

    def test_retry_defaults(self):
        assert RETRY.MAX_ATTEMPTS == 2
        assert RETRY.BASE_DELAY == 4.0
        assert RETRY.RATE_LIMIT_BASE_WAIT == 30.0
        assert RETRY.RATE_LIMIT_MAX_WAIT == 300.0
        assert RETRY.BLOCKED_RETRIES == 1
        assert RETRY.MIN_ATTEMPTS <= RETRY.MAX_ATTEMPTS <= RETRY.MAX_ALLOWED_ATTEMPTS

    def test_batch_defaults(self):
        assert BATCH.FROM_ID == 1
        assert BATCH.TO_ID == 10000
        assert BATCH.DELAY == 2.0
        assert BATCH.CONCURRENCY == 1
        assert BATCH.MAX_CONCURRENCY == 16

    def test_ledger_flush_interval(self):
        assert LEDGER.FLUSH_INTERVAL == 10

    def test_browser_locale(self):
        assert BROWSER.LOCALE == 'en-GB'
        assert BROWSER.TIMEZONE == 'Europe/London'

    def test_extraction_limits(self):
        assert EXTRACTION.ADDRESS_MAX_LINES == 8
        assert EXTRACTION.MAX_BUSINESS_NAME_LENGTH == 120

    def test_logging_rotation(self):
        assert LOGGING.MAX_BYTES == 10 * 1024 * 1024
        assert LOGGING.BACKUP_COUNT == 5


class TestImmutability:
    """Constants are frozen dataclasses."""

    @pytest.mark.parametrize('group, attr', [
        (HTTP, 'TIMEOUT'),
        (RETRY, 'MAX_ATTEMPTS'),
        (BATCH, 'DELAY'),
        (LEDGER, 'FLUSH_INTERVAL'),
    ])
    def test_cannot_modify(self, group, attr):
        with pytest.raises(FrozenInstanceError):
            setattr(group, attr, 0)
