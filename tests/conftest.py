"""Pytest configuration and fixtures for scraper tests"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from src.shared.seller_schema import SellerRecord


@pytest.fixture
def sample_seller_record():
    """Record for seller 3958 as extracted from its page"""
    return SellerRecord(
        seller_id=3958,
        business_name='ACME LTD',
        vat_number='GB999999973',
        registered_address='1 High St, London, SW1A 1AA',
        shipped_from='United Kingdom',
        source_url='https://www.diy.com/verified-sellers/seller/3958',
    )
