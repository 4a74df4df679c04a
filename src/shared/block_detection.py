"""Detection of anti-bot challenge and interstitial pages.

A challenge page often comes back as HTTP 200 and parses to an empty
record, which looks exactly like "no seller at this id". detect_block()
looks for the signals that tell the two apart.
"""

import re
from typing import Optional

from src.shared.text import strip_scripts_and_styles

__all__ = [
    'BLOCK_SIGNALS',
    'MARKUP_BLOCK_SIGNALS',
    'NOT_FOUND_PHRASES',
    'detect_block',
    'is_not_found_page',
]


# Checked against the page with scripts/styles removed; the raw page embeds
# config keys such as "showCaptcha" that would otherwise match.
BLOCK_SIGNALS = (
    'access denied',
    'request unsuccessful',
    'service unavailable',
    'temporarily unavailable',
    'pardon our interruption',
    'sorry, you have been blocked',
    'verify you are human',
    'cf-chl',
    'bot detection',
)

# Safe to check against the full markup
MARKUP_BLOCK_SIGNALS = (
    'incapsula',
    'distil',
    '/_sec/',
)

NOT_FOUND_PHRASES = (
    'page not found',
    'seller not found',
    "sorry, we can't find",
    'sorry, we can&apos;t find',
    'sorry, we can&#39;t find',
)

BLOCKED_STATUSES = frozenset({503})

_CAPTCHA_RE = re.compile(
    r'solve.{0,20}captcha|complete.{0,20}captcha|captcha-container|captcha-box|g-recaptcha[^"]',
    re.IGNORECASE,
)
_BLOCKED_URL_RE = re.compile(r'challenge|captcha|blocked', re.IGNORECASE)


def detect_block(html: str, status: Optional[int] = None, final_url: str = '') -> Optional[str]:
    """Return the reason a page looks like a block/challenge, or None.

    Args:
        html: Raw page markup
        status: HTTP status of the main navigation, if known
        final_url: URL after redirects

    Returns:
        Short description of the first matching signal, or None
    """
    if status in BLOCKED_STATUSES:
        return f"HTTP {status}"

    visible = strip_scripts_and_styles(html).lower()
    for signal in BLOCK_SIGNALS:
        if signal in visible:
            return f"block signal '{signal}'"

    full = (html or '').lower()
    for signal in MARKUP_BLOCK_SIGNALS:
        if signal in full:
            return f"block signal '{signal}'"

    match = _CAPTCHA_RE.search(visible)
    if match:
        return f"captcha challenge '{match.group(0)}'"

    if final_url and _BLOCKED_URL_RE.search(final_url):
        return f"redirected to {final_url}"

    return None


def is_not_found_page(html: str) -> bool:
    """True if the page explicitly says the seller/page does not exist."""
    text = (html or '').lower()
    return any(phrase in text for phrase in NOT_FOUND_PHRASES)
