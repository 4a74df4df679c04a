"""Configuration constants for the B&Q (diy.com) verified seller directory"""

import random

from src.shared.constants import BROWSER
from src.shared.http import DEFAULT_USER_AGENTS

# Base URLs
BASE_URL = "https://www.diy.com"
SELLER_PAGE_URL = f"{BASE_URL}/verified-sellers/seller/{{seller_id}}"

# JSON seller API (bearer token read from the environment variable below)
API_URL = "https://api.kingfisher.com/v1/mobile/sellers/BQUK/{seller_id}"
API_TOKEN_ENV = "DIY_API_TOKEN"

# Browser context used for rendered pages
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
BROWSER_LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
]
BROWSER_CONTEXT = {
    "locale": BROWSER.LOCALE,
    "timezone_id": BROWSER.TIMEZONE,
    "user_agent": BROWSER_USER_AGENT,
    "viewport": {"width": BROWSER.VIEWPORT_WIDTH, "height": BROWSER.VIEWPORT_HEIGHT},
    "extra_http_headers": {
        "Accept-Language": "en-GB,en;q=0.9",
        "Upgrade-Insecure-Requests": "1",
    },
}
# Hides navigator.webdriver from page scripts
STEALTH_INIT_SCRIPT = "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"

# The seller page is a React SPA: wait until either seller details or the
# "not found" component has rendered.
RENDER_READY_SCRIPT = """
() => {
  const t = (document.body && document.body.innerText) || '';
  if (/VAT number|Registered address|This seller ships from|Shipped from/i.test(t)) return true;
  if (document.querySelector('[data-test-id="seller-not-found"]')) return true;
  if (/seller details cannot be found|seller not found/i.test(t)) return true;
  return false;
}
"""

# Markup markers that mean "no seller at this id"
NOT_FOUND_MARKERS = [
    'data-test-id="seller-not-found"',
    'seller details cannot be found',
]

# Statuses that mean the seller does not exist
NOT_FOUND_STATUSES = frozenset({404, 410})

# Values treated as "not provided" in API address objects
PLACEHOLDER_VALUES = frozenset({'', 'n/a', 'na', '-', 'none', 'null', 'tbc', 'unknown'})


def seller_page_url(seller_id: int) -> str:
    return SELLER_PAGE_URL.format(seller_id=seller_id)


def seller_api_url(seller_id: int, api_url: str = API_URL) -> str:
    return api_url.format(seller_id=seller_id)


def get_user_agent() -> str:
    """Random desktop user agent for API requests"""
    return random.choice(DEFAULT_USER_AGENTS)
