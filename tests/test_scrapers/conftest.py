"""Shared fixtures for fetch client unit tests."""

import pytest
from unittest.mock import AsyncMock, Mock

import requests


@pytest.fixture
def mock_session():
    """Create a mock requests session."""
    session = Mock(spec=requests.Session)
    return session


@pytest.fixture
def mock_response():
    """Factory for creating mock HTTP responses."""
    def _create(
        status_code: int = 200,
        text: str = '',
        json_data: dict = None,
        headers: dict = None,
        url: str = 'https://api.kingfisher.com/v1/mobile/sellers/BQUK/3958'
    ):
        response = Mock(spec=requests.Response)
        response.status_code = status_code
        response.text = text
        response.ok = 200 <= status_code < 400
        response.url = url
        response.headers = headers or {}

        if json_data is not None:
            response.json.return_value = json_data
        else:
            response.json.side_effect = ValueError("No JSON data")

        return response
    return _create


@pytest.fixture
def no_sleep():
    """Sleep stand-in that records requested delays without waiting."""
    return AsyncMock()


@pytest.fixture
def seller_api_payload():
    """API document for seller 3958."""
    return {
        'data': {
            'id': '3958',
            'type': 'seller',
            'attributes': {
                'businessName': 'ACME LTD',
                'vatNumber': 'GB999999973',
                'shippingCountry': 'United Kingdom',
                'registeredAddress': {
                    'street': '1 High St',
                    'city': 'London',
                    'region': '',
                    'postcode': 'SW1A 1AA',
                    'country': 'GB',
                },
                'returnsAddress': {
                    'street': 'Unit 9, Dock Rd',
                    'city': 'Liverpool',
                    'postcode': 'L1 1AA',
                    'country': 'GB',
                },
            },
        }
    }


@pytest.fixture
def seller_page_html():
    """Rendered seller page for 3958."""
    return (
        '<html><head><title>ACME LTD | B&amp;Q</title>'
        '<script>window.__APP_CONFIG__ = {"showCaptcha": false}</script></head>'
        '<body><main>'
        '<h2>Business name</h2><p>ACME LTD</p>'
        '<h2>VAT number</h2><p>GB999999973</p><button>Copy</button>'
        '<h2>Registered address</h2><p>1 High St</p><p>London</p><p>SW1A 1AA</p>'
        '<p>This seller ships from United Kingdom</p>'
        '<h2>How to contact a B&amp;Q verified seller</h2>'
        '</main></body></html>'
    )


@pytest.fixture
def challenge_page_html():
    return (
        '<html><head><title>diy.com</title></head>'
        '<body><h1>Please verify you are human</h1>'
        '<p>Press and hold the button to continue.</p></body></html>'
    )


@pytest.fixture
def not_found_page_html():
    return '<html><body><main><h1>Seller not found</h1><a href="/">Back to homepage</a></main></body></html>'
