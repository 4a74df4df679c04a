"""Sentry.io integration for error monitoring.

Sentry is enabled only when SENTRY_DSN is set. Per-seller failures are
recorded in the progress ledger and are not reported here; only run-level
failures (unreadable ledger, unwritable results file, crashes) are.

Usage:
    from src.shared.sentry_integration import init_sentry, capture_scraper_error

    # Initialize at application startup (run.py)
    init_sentry()

    # Capture errors with run context
    capture_scraper_error(exception, mode="browser", extra={"from_id": 1})
"""

import logging
import os
import re
import subprocess
from typing import Any, Dict, Optional

import sentry_sdk

_sentry_initialized = False

logger = logging.getLogger(__name__)


def init_sentry(
    dsn: Optional[str] = None,
    environment: Optional[str] = None,
    release: Optional[str] = None,
    traces_sample_rate: Optional[float] = None,
) -> bool:
    """Initialize Sentry SDK with project configuration.

    Args:
        dsn: Sentry DSN (defaults to SENTRY_DSN env var)
        environment: Environment name (defaults to SENTRY_ENVIRONMENT or 'development')
        release: Release version (defaults to SENTRY_RELEASE or git hash)
        traces_sample_rate: Performance monitoring sample rate (0.0 to 1.0)

    Returns:
        True if Sentry was initialized, False if disabled
    """
    global _sentry_initialized

    if _sentry_initialized:
        return True

    dsn = dsn or os.getenv("SENTRY_DSN", "")
    if not dsn:
        logger.debug("SENTRY_DSN not set, Sentry disabled")
        return False

    environment = environment or os.getenv("SENTRY_ENVIRONMENT", "development")
    release = release or os.getenv("SENTRY_RELEASE") or _get_git_release()

    if traces_sample_rate is None:
        traces_sample_rate = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.0"))

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            release=release,
            traces_sample_rate=traces_sample_rate,
            before_send=_before_send,
            send_default_pii=False,
            attach_stacktrace=True,
            max_breadcrumbs=50,
        )
        sentry_sdk.set_tag("project", "diy-seller-scraper")

        _sentry_initialized = True
        logger.info(f"Sentry initialized (environment={environment}, release={release})")
        return True

    except Exception as e:
        logger.warning(f"Failed to initialize Sentry: {e}")
        return False


def _get_git_release() -> Optional[str]:
    """Get current git commit hash as release version."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if result.returncode == 0:
        return result.stdout.strip() or None
    return None


def _before_send(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Scrub bearer tokens and credentials before an event leaves the process."""
    for exception in event.get("exception", {}).get("values", []):
        if "value" in exception:
            exception["value"] = _scrub_sensitive_data(exception["value"])

    for breadcrumb in event.get("breadcrumbs", {}).get("values", []):
        if "message" in breadcrumb:
            breadcrumb["message"] = _scrub_sensitive_data(breadcrumb["message"])

    return event


def _scrub_sensitive_data(text: str) -> str:
    """Remove sensitive data from text."""
    if not isinstance(text, str):
        return text

    # user:pass@host in URLs
    text = re.sub(r"://[^:/\s]+:[^@\s]+@", "://[REDACTED]@", text)
    text = re.sub(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", r"\1[REDACTED]", text)
    text = re.sub(r"(api[_-]?key|password|secret|token)=[^&\s]+", r"\1=[REDACTED]", text, flags=re.IGNORECASE)

    return text


def capture_scraper_error(
    exception: Exception,
    mode: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """Capture an exception with scraper context.

    Args:
        exception: The exception to capture
        mode: Fetch mode ('api' or 'browser')
        extra: Additional context data (e.g., id range, output paths)

    Returns:
        Sentry event ID if captured, None otherwise
    """
    if not _sentry_initialized:
        return None

    with sentry_sdk.push_scope() as scope:
        if mode:
            scope.set_tag("mode", mode)

        if extra:
            safe_extra = {}
            for key, value in extra.items():
                if isinstance(value, str):
                    safe_extra[key] = _scrub_sensitive_data(value)
                else:
                    safe_extra[key] = value
            scope.set_context("scraper_context", safe_extra)

        return sentry_sdk.capture_exception(exception)


def flush(timeout: float = 2.0) -> None:
    """Flush pending events to Sentry before exit."""
    if _sentry_initialized:
        sentry_sdk.flush(timeout=timeout)
