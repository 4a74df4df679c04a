"""Tests for challenge page detection."""

import pytest

from src.shared.block_detection import detect_block, is_not_found_page


class TestDetectBlock:
    """Block signals vs. genuine pages."""

    def test_verify_you_are_human(self):
        html = "<html><body><h1>Please verify you are human</h1></body></html>"
        assert detect_block(html) == "block signal 'verify you are human'"

    @pytest.mark.parametrize('phrase', ['Access Denied', 'Pardon Our Interruption', 'Request unsuccessful'])
    def test_visible_denial_wording(self, phrase):
        assert detect_block(f"<body><p>{phrase}</p></body>") is not None

    def test_script_only_mentions_are_ignored(self):
        """Page config keys like showCaptcha must not trigger a block."""
        html = (
            "<script>window.cfg = {showCaptcha: false, msg: 'access denied'}</script>"
            "<style>.captcha-box{display:none}</style>"
            "<div>Business name</div><div>ACME LTD</div>"
        )
        assert detect_block(html) is None

    def test_markup_signal_in_script(self):
        html = '<script src="/_Incapsula_Resource?SWJIYLWA=719d34d31c8e3a6e"></script>'
        assert detect_block(html) == "block signal 'incapsula'"

    def test_captcha_widget(self):
        html = '<div id="captcha-container"></div><p>Please complete the captcha below</p>'
        assert detect_block(html).startswith('captcha challenge')

    def test_service_unavailable_status(self):
        assert detect_block("<html></html>", status=503) == "HTTP 503"

    def test_redirect_to_challenge_url(self):
        reason = detect_block("<html></html>", status=200, final_url="https://www.diy.com/challenge?ref=seller")
        assert reason == "redirected to https://www.diy.com/challenge?ref=seller"

    def test_normal_seller_page(self):
        html = "<div>Business name</div><div>ACME LTD</div><div>VAT number</div><div>GB123456789</div>"
        assert detect_block(html, status=200, final_url="https://www.diy.com/verified-sellers/seller/1") is None

    def test_empty_page(self):
        assert detect_block('') is None


class TestNotFoundPage:
    """Explicit not-found wording."""

    @pytest.mark.parametrize('html', [
        '<h1>Seller not found</h1>',
        '<h1>Page Not Found</h1>',
        "<p>Sorry, we can&#39;t find that page</p>",
    ])
    def test_not_found_wording(self, html):
        assert is_not_found_page(html)

    def test_regular_page(self):
        assert not is_not_found_page('<div>ACME LTD</div>')
        assert not is_not_found_page(None)
