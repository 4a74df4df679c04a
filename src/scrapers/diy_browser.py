"""Core scraping functions for rendered B&Q verified seller pages

The public seller page is a client-rendered SPA behind bot protection, so
it is loaded in headless Chromium through Playwright. One browser and one
context are shared by the whole run; each concurrent fetch borrows a page
from a small pool.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from config import diy_config
from src.shared.backoff import FailureKind, RetryPolicy
from src.shared.block_detection import detect_block, is_not_found_page
from src.shared.constants import HTTP
from src.shared.debug_store import DebugStore
from src.shared.delays import Sleeper
from src.shared.fetch_client import AttemptFailure, AttemptResult, SellerFetchClient
from src.shared.seller_schema import FetchOutcome
from src.scrapers.diy_parser import parse_seller_page

__all__ = [
    'DiyBrowserClient',
    'PageSnapshot',
    'create_client',
]


@dataclass
class PageSnapshot:
    """What one navigation produced."""
    status: Optional[int]
    html: str
    final_url: str = ''


class DiyBrowserClient(SellerFetchClient):
    """Fetch sellers by rendering the public seller page.

    Args:
        concurrency: Number of pages kept open (one per in-flight fetch)
        headed: Show the browser window
        timeout: Navigation timeout in seconds
        render_wait: Upper bound in seconds on waiting for the SPA to render
        debug_store: Where blocked and empty pages are dumped (optional)
    """

    def __init__(
        self,
        concurrency: int = 1,
        headed: bool = False,
        timeout: int = HTTP.TIMEOUT,
        render_wait: int = HTTP.RENDER_WAIT,
        debug_store: Optional[DebugStore] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Optional[Sleeper] = None,
    ):
        super().__init__(retry_policy=retry_policy, sleep=sleep)
        self.concurrency = max(1, concurrency)
        self.headed = headed
        self.timeout = timeout
        self.render_wait = render_wait
        self.debug_store = debug_store
        self._playwright = None
        self._browser = None
        self._context = None
        self._pages: Optional[asyncio.Queue] = None

    def build_url(self, seller_id: int) -> str:
        return diy_config.seller_page_url(seller_id)

    async def open(self) -> None:
        if self._browser is not None:
            return
        logging.info(f"Launching Chromium ({'headed' if self.headed else 'headless'}, {self.concurrency} page(s))")
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=not self.headed,
                args=diy_config.BROWSER_LAUNCH_ARGS,
            )
            self._context = await self._browser.new_context(**diy_config.BROWSER_CONTEXT)
            await self._context.add_init_script(diy_config.STEALTH_INIT_SCRIPT)
            self._pages = asyncio.Queue()
            for _ in range(self.concurrency):
                self._pages.put_nowait(await self._context.new_page())
        except BaseException:
            await self.close()
            raise

    async def close(self) -> None:
        # Teardown is best effort: the run result is already persisted
        for name in ('_context', '_browser'):
            resource = getattr(self, name)
            if resource is None:
                continue
            try:
                await resource.close()
            except PlaywrightError as e:
                logging.debug(f"Ignoring error while closing {name.strip('_')}: {e}")
            setattr(self, name, None)
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as e:
                logging.debug(f"Ignoring error while stopping Playwright: {e}")
            self._playwright = None
        self._pages = None

    async def _load(self, url: str) -> PageSnapshot:
        """Navigate a pooled page to url and return the rendered markup."""
        if self._pages is None:
            await self.open()
        page = await self._pages.get()
        try:
            response = await page.goto(url, wait_until='domcontentloaded', timeout=self.timeout * 1000)
            status = response.status if response is not None else None
            if status in diy_config.NOT_FOUND_STATUSES:
                return PageSnapshot(status, '', page.url)
            try:
                await page.wait_for_function(diy_config.RENDER_READY_SCRIPT, timeout=self.render_wait * 1000)
            except PlaywrightTimeoutError:
                logging.debug(f"Render wait timed out for {url}")
            return PageSnapshot(status, await page.content(), page.url)
        finally:
            self._pages.put_nowait(page)

    async def _attempt(self, seller_id: int, url: str, attempt: int) -> AttemptResult:
        try:
            snapshot = await self._load(url)
        except PlaywrightError as e:
            return AttemptFailure(FailureKind.TRANSIENT_TRANSPORT, str(e).splitlines()[0] if str(e) else type(e).__name__)
        return self.classify(seller_id, url, snapshot)

    def _dump(self, seller_id: int, reason: str, html: str) -> None:
        if self.debug_store is not None:
            self.debug_store.save(seller_id, reason, html)

    def classify(self, seller_id: int, url: str, snapshot: PageSnapshot) -> AttemptResult:
        """Turn a page snapshot into an outcome or a retryable failure."""
        status = snapshot.status
        html = snapshot.html or ''

        if status in diy_config.NOT_FOUND_STATUSES:
            return FetchOutcome.empty(seller_id, url)

        if any(marker in html for marker in diy_config.NOT_FOUND_MARKERS):
            return FetchOutcome.empty(seller_id, url)

        block_reason = detect_block(html, status=status, final_url=snapshot.final_url)
        if block_reason:
            self._dump(seller_id, 'blocked', html)
            return AttemptFailure(
                FailureKind.BLOCKED,
                f"Blocked/challenge page (HTTP {status if status is not None else 'unknown'}): {block_reason}",
            )

        record = parse_seller_page(html, seller_id, url)
        if not record.is_empty():
            return FetchOutcome.found(record)

        self._dump(seller_id, 'empty', html)
        if is_not_found_page(html):
            return FetchOutcome.empty(seller_id, url)
        if status is not None and status >= 400:
            return AttemptFailure(FailureKind.UNEXPECTED_STATUS, f"HTTP {status}")
        return AttemptFailure(FailureKind.UNEXPECTED_STATUS, "Empty page without not-found marker")


def create_client(
    config: Dict[str, Any],
    retry_policy: Optional[RetryPolicy] = None,
    **kwargs: Any,
) -> DiyBrowserClient:
    """Standard client factory.

    Args:
        config: Resolved run configuration (see src.shared.config_loader)
        retry_policy: Retry budget and backoff policies
        **kwargs: Passed through to DiyBrowserClient (sleep, debug_store)
    """
    scraper_config = config['scraper']
    browser_config = config.get('browser', {})
    if 'debug_store' not in kwargs:
        debug_dir = browser_config.get('debug_dir') or os.path.join(scraper_config['output_dir'], 'debug')
        kwargs['debug_store'] = DebugStore(debug_dir)

    return DiyBrowserClient(
        concurrency=scraper_config['concurrency'],
        headed=browser_config.get('headed', False),
        timeout=scraper_config['timeout'],
        render_wait=browser_config.get('render_wait', HTTP.RENDER_WAIT),
        retry_policy=retry_policy,
        **kwargs
    )
