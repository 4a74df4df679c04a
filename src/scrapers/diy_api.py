"""Core scraping functions for the B&Q verified seller JSON API

The seller API returns one JSON document per seller id and requires a
bearer token. Unlike the rendered page, the document is structured, so an
all-empty result is unambiguous: the seller does not exist.

Response shape (attributes may also sit at the top level):

    {"data": {"id": "3958", "attributes": {
        "businessName": "ACME LTD",
        "vatNumber": "GB999999973",
        "shippingCountry": "United Kingdom",
        "registeredAddress": {"street": "1 High St", "city": "London",
                              "region": "", "postcode": "SW1A 1AA",
                              "country": "GB"},
        "returnsAddress": {...}}}}
"""

import asyncio
import functools
import logging
import os
from typing import Any, Dict, Optional

import requests

from config import diy_config
from src.shared.backoff import FailureKind, RetryPolicy
from src.shared.constants import HTTP
from src.shared.delays import Sleeper
from src.shared.errors import ConfigError
from src.shared.fetch_client import AttemptFailure, AttemptResult, SellerFetchClient
from src.shared.http import get_api_headers, redact_credentials, sanitize_url
from src.shared.seller_schema import FetchOutcome, SellerRecord
from src.scrapers.diy_parser import validate_field

__all__ = [
    'DiyApiClient',
    'create_client',
    'format_address',
    'parse_api_seller',
]


ADDRESS_PARTS = [
    ('street', 'line1', 'addressLine1'),
    ('line2', 'addressLine2'),
    ('city', 'town'),
    ('region', 'county', 'state'),
    ('postcode', 'postalCode', 'zip'),
    ('country', 'countryName'),
]

# Secondary address objects accepted when the registered one is a placeholder
FALLBACK_ADDRESS_KEYS = ('businessAddress', 'returnsAddress')


def _text(value: Any) -> str:
    """Plain string from a scalar or a {"name": ...} style object."""
    if value is None:
        return ''
    if isinstance(value, dict):
        return _text(value.get('name') or value.get('label') or value.get('value'))
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    return ''


def _first(attrs: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = _text(attrs.get(key))
        if value:
            return value
    return ''


def _is_placeholder(value: str) -> bool:
    return value.strip().lower() in diy_config.PLACEHOLDER_VALUES


def format_address(address: Any) -> str:
    """Join the non-placeholder parts of an address object with ', '.

    Returns '' when every part is a placeholder.
    """
    if isinstance(address, str):
        return '' if _is_placeholder(address) else address.strip()
    if not isinstance(address, dict):
        return ''
    parts = []
    for keys in ADDRESS_PARTS:
        value = _first(address, *keys)
        if value and not _is_placeholder(value):
            parts.append(value)
    return ', '.join(parts)


def _attributes(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        return {}
    data = payload.get('data', payload)
    if isinstance(data, list):
        data = data[0] if data else {}
    if not isinstance(data, dict):
        return {}
    attrs = data.get('attributes', data)
    return attrs if isinstance(attrs, dict) else {}


def parse_api_seller(payload: Any, seller_id: int, source_url: str = '') -> SellerRecord:
    """Map an API document to a SellerRecord.

    Values go through the same field validators as page extraction, so an
    invalid VAT number is dropped here too.
    """
    attrs = _attributes(payload)

    address = format_address(attrs.get('registeredAddress'))
    if not address:
        for key in FALLBACK_ADDRESS_KEYS:
            address = format_address(attrs.get(key))
            if address:
                break

    fields = {
        'business_name': _first(attrs, 'businessName', 'tradingName', 'name'),
        'vat_number': _first(attrs, 'vatNumber', 'taxId', 'taxNumber'),
        'registered_address': address,
        'shipped_from': _first(attrs, 'shippingCountry', 'shipsFrom', 'dispatchCountry'),
    }
    return SellerRecord.from_fields(
        seller_id,
        {name: validate_field(name, value) for name, value in fields.items()},
        source_url,
    )


class DiyApiClient(SellerFetchClient):
    """Fetch sellers from the JSON API with a bearer token.

    requests is blocking, so each call runs in the default executor and the
    event loop stays free for the other fetches of a batch.
    """

    def __init__(
        self,
        token: str,
        api_url: str = diy_config.API_URL,
        session: Optional[requests.Session] = None,
        timeout: int = HTTP.TIMEOUT,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Optional[Sleeper] = None,
    ):
        super().__init__(retry_policy=retry_policy, sleep=sleep)
        if not token:
            raise ConfigError(f"API token is empty; set {diy_config.API_TOKEN_ENV}")
        self.api_url = api_url
        self.timeout = timeout
        self.headers = get_api_headers(token, user_agent=diy_config.get_user_agent())
        self.session = session
        self._owns_session = session is None

    def build_url(self, seller_id: int) -> str:
        return diy_config.seller_api_url(seller_id, self.api_url)

    async def open(self) -> None:
        if self.session is None:
            self.session = requests.Session()
            self._owns_session = True

    async def close(self) -> None:
        if self.session is not None and self._owns_session:
            self.session.close()
            self.session = None

    def _get(self, url: str) -> requests.Response:
        # Headers are passed per request so a shared session is never mutated
        return self.session.get(url, headers=self.headers, timeout=self.timeout)

    async def _attempt(self, seller_id: int, url: str, attempt: int) -> AttemptResult:
        if self.session is None:
            await self.open()
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(None, functools.partial(self._get, url))
        except requests.exceptions.RequestException as e:
            return AttemptFailure(FailureKind.TRANSIENT_TRANSPORT, redact_credentials(str(e)) or type(e).__name__)

        status = response.status_code
        if status in diy_config.NOT_FOUND_STATUSES:
            logging.debug(f"[seller {seller_id}] HTTP {status} from {sanitize_url(url)}")
            return FetchOutcome.empty(seller_id, url)
        if status == 429:
            return AttemptFailure(FailureKind.RATE_LIMITED, "HTTP 429", retry_after=response.headers.get('Retry-After'))
        if not 200 <= status < 300:
            return AttemptFailure(FailureKind.UNEXPECTED_STATUS, f"HTTP {status}")

        try:
            payload = response.json()
        except ValueError:
            return AttemptFailure(FailureKind.UNEXPECTED_STATUS, f"HTTP {status} with invalid JSON body")

        return FetchOutcome.found(parse_api_seller(payload, seller_id, url))


def create_client(
    config: Dict[str, Any],
    retry_policy: Optional[RetryPolicy] = None,
    **kwargs: Any,
) -> DiyApiClient:
    """Standard client factory.

    Args:
        config: Resolved run configuration (see src.shared.config_loader)
        retry_policy: Retry budget and backoff policies
        **kwargs: Passed through to DiyApiClient (session, sleep)

    Raises:
        ConfigError: If no API token is available
    """
    api_config = config.get('api', {})
    token_env = api_config.get('token_env', diy_config.API_TOKEN_ENV)
    token = os.getenv(token_env, '')
    if not token:
        raise ConfigError(f"API mode needs a bearer token in the {token_env} environment variable")

    return DiyApiClient(
        token=token,
        api_url=api_config.get('base_url', diy_config.API_URL),
        timeout=config['scraper']['timeout'],
        retry_policy=retry_policy,
        **kwargs
    )
