"""Tests for B&Q seller page field extraction."""

import pytest

from src.scrapers.diy_parser import (
    EXTRACTION_STRATEGIES,
    clean_address,
    extract_label_blocks,
    extract_pattern_fallback,
    extract_seller_fields,
    extract_structural_pairs,
    find_value_by_labels,
    is_bad_business_name,
    looks_like_business_name,
    looks_like_vat,
    parse_seller_page,
    run_cascade,
    validate_field,
)
from src.shared.text import normalize_html


SELLER_3958_TEXT = (
    "Business name\n"
    "ACME LTD\n"
    "VAT number\n"
    "GB999999973\n"
    "Registered address\n"
    "1 High St, London, SW1A 1AA\n"
    "This seller ships from United Kingdom"
)

EXPECTED_3958 = {
    'business_name': 'ACME LTD',
    'vat_number': 'GB999999973',
    'registered_address': '1 High St, London, SW1A 1AA',
    'shipped_from': 'United Kingdom',
}


def as_page(text: str) -> str:
    """Wrap each line in a <div>, the way the seller page renders blocks."""
    body = ''.join(f'<div>{line}</div>' for line in text.split('\n'))
    return f'<html><head><script>window.__STATE__={{}}</script></head><body><main>{body}</main></body></html>'


class TestEndToEnd:
    """Full page to record."""

    def test_seller_3958_from_text_fixture(self):
        record = parse_seller_page(SELLER_3958_TEXT, 3958, 'https://www.diy.com/verified-sellers/seller/3958')

        assert record.seller_id == 3958
        assert record.business_name == 'ACME LTD'
        assert record.vat_number == 'GB999999973'
        assert record.registered_address == '1 High St, London, SW1A 1AA'
        assert record.shipped_from == 'United Kingdom'
        assert record.source_url.endswith('/3958')

    def test_seller_3958_from_rendered_markup(self):
        assert extract_seller_fields(as_page(SELLER_3958_TEXT)) == EXPECTED_3958

    def test_garbage_markup_never_raises(self):
        fields = extract_seller_fields('<<<div>>> </p></p> &&&')
        assert set(fields) == set(EXPECTED_3958)
        assert all(value == '' for value in fields.values())

    def test_empty_page_gives_empty_record(self):
        assert parse_seller_page('', 1).is_empty()


class TestValidators:
    """Field validation rules applied to every strategy's output."""

    @pytest.mark.parametrize('value', ['GB123456789', 'GB999999973', 'DE123456789', '123456789'])
    def test_vat_accepted(self, value):
        assert looks_like_vat(value)
        assert validate_field('vat_number', value) == value

    @pytest.mark.parametrize('value', ['N/A', '12345', 'GB1234567', 'GB 123 456 789', 'not provided'])
    def test_vat_rejected(self, value):
        assert not looks_like_vat(value)
        assert validate_field('vat_number', value) == ''

    def test_bad_business_names(self):
        assert is_bad_business_name('Email:')
        assert is_bad_business_name('  VAT number ')
        assert not looks_like_business_name('Business name')
        assert not looks_like_business_name('How to contact a B&Q verified seller')
        assert not looks_like_business_name('x' * 121)
        assert looks_like_business_name('ACME LTD')

    def test_address_truncated_at_ships_from(self):
        value = '1 High St, London, SW1A 1AA, This seller ships from Germany'
        assert clean_address(value) == '1 High St, London, SW1A 1AA'

    def test_address_lines_joined(self):
        assert clean_address('1 High St\nLondon\nSW1A 1AA') == '1 High St, London, SW1A 1AA'

    def test_address_truncated_at_returns_heading(self):
        assert clean_address('Unit 4, Leeds,\nReturns policy\nSend items back') == 'Unit 4, Leeds'

    def test_empty_values(self):
        assert validate_field('business_name', None) == ''
        assert validate_field('shipped_from', '') == ''


class TestLabelBlocks:
    """Strategy 1: label followed by value line(s)."""

    def test_same_line_colon_value(self):
        fields = extract_label_blocks("VAT number: GB123456789\nBusiness name - ACME LTD")
        assert fields['vat_number'] == 'GB123456789'
        assert fields['business_name'] == 'ACME LTD'

    def test_address_stops_at_stop_heading(self):
        text = "Registered address\n1 High St\nLondon\nReturns policy\nSend items back"
        assert extract_label_blocks(text)['registered_address'] == '1 High St, London'

    def test_address_stops_at_known_label(self):
        text = "Registered address\n1 High St\nLondon\nVAT number\nGB123456789"
        fields = extract_label_blocks(text)
        assert fields['registered_address'] == '1 High St, London'
        assert fields['vat_number'] == 'GB123456789'

    def test_noise_tokens_skipped(self):
        text = (
            "Registered address\n1 High St\nCopy\nLondon\nDown chevron\nSW1A 1AA\n"
            "This seller ships from Germany"
        )
        fields = extract_label_blocks(text)
        assert fields['registered_address'] == '1 High St, London, SW1A 1AA'
        assert fields['shipped_from'] == 'Germany'

    def test_address_max_lines(self):
        lines = [f"Line {n}" for n in range(1, 12)]
        text = "Registered address\n" + "\n".join(lines)
        assert extract_label_blocks(text)['registered_address'] == ', '.join(lines[:8])

    def test_shipped_from_label(self):
        assert extract_label_blocks("Shipped from\nFrance")['shipped_from'] == 'France'

    def test_invalid_candidate_skipped_for_later_occurrence(self):
        text = "VAT number\nN/A\nVAT number\nGB123456789"
        assert extract_label_blocks(text)['vat_number'] == 'GB123456789'


class TestStructuralPairs:
    """Strategy 2: dt/dd, table rows and colon lines."""

    def test_colon_pairs_with_synonym(self):
        fields = extract_structural_pairs("Company name: Widget Co\nShips from: Spain")
        assert fields['business_name'] == 'Widget Co'
        assert fields['shipped_from'] == 'Spain'

    def test_table_rows(self):
        markup = "<table><tr><th>Registered address</th><td>1 High St, London</td></tr></table>"
        fields = extract_structural_pairs(normalize_html(markup), markup)
        assert fields['registered_address'] == '1 High St, London'

    def test_definition_list_beats_colon_pair(self):
        markup = "<dl><dt>Business name</dt><dd>DL TRADING LTD</dd></dl>"
        fields = extract_structural_pairs("Business name: COLON LTD", markup)
        assert fields['business_name'] == 'DL TRADING LTD'

    def test_exact_match_before_contains_match(self):
        pairs = {'Registered business name': 'WRONG LTD', 'Business name': 'RIGHT LTD'}
        assert find_value_by_labels(pairs, ['Business name']) == 'RIGHT LTD'
        assert find_value_by_labels({'Registered business name': 'ONLY LTD'}, ['Business name']) == 'ONLY LTD'


class TestPatternFallback:
    """Strategy 3: regexes and the name-above-label heuristic."""

    def test_name_above_vat_label(self):
        text = "Seller details\nACME (UK) LTD\nVAT number\nGB123456789"
        fields = extract_pattern_fallback(text)
        assert fields['business_name'] == 'ACME (UK) LTD'
        assert fields['vat_number'] == 'GB123456789'

    def test_ships_from_phrase(self):
        assert extract_pattern_fallback("This seller ships from Italy")['shipped_from'] == 'Italy'


class TestCascade:
    """Ordering and fall-through between strategies."""

    def test_strategies_in_priority_order(self):
        assert EXTRACTION_STRATEGIES == [
            extract_label_blocks,
            extract_structural_pairs,
            extract_pattern_fallback,
        ]

    def test_label_block_wins_over_structural_pair(self):
        text = "Business name\nBLOCK TRADING LTD\nVAT number\nGB123456789"
        markup = "<dl><dt>Business name</dt><dd>PAIR TRADING LTD</dd></dl>"
        assert run_cascade(text, markup)['business_name'] == 'BLOCK TRADING LTD'

    def test_structural_pair_used_when_label_block_empty(self):
        text = "VAT number\nGB123456789"
        markup = "<dl><dt>Business name</dt><dd>PAIR TRADING LTD</dd></dl>"
        assert run_cascade(text, markup)['business_name'] == 'PAIR TRADING LTD'

    def test_rejected_value_falls_through(self):
        """A form label captured as a name must not block later strategies."""
        markup = (
            "<dl><dt>Business name</dt><dd>Email</dd></dl>"
            "<p>ACME TRADING LTD</p><p>VAT number</p><p>GB123456789</p>"
        )
        fields = extract_seller_fields(markup)
        assert fields['business_name'] == 'ACME TRADING LTD'
        assert fields['vat_number'] == 'GB123456789'

    def test_first_valid_value_per_field(self):
        strategies = [
            lambda text, markup: {'business_name': 'email'},
            lambda text, markup: {'business_name': 'ACME LTD', 'vat_number': '12345'},
            lambda text, markup: {'vat_number': 'GB123456789'},
        ]
        fields = run_cascade('', '', strategies)
        assert fields['business_name'] == 'ACME LTD'
        assert fields['vat_number'] == 'GB123456789'

    def test_failing_strategy_is_skipped(self):
        def broken(text, markup):
            raise RuntimeError("boom")

        fields = run_cascade('', '', [broken, lambda text, markup: {'vat_number': 'GB123456789'}])
        assert fields['vat_number'] == 'GB123456789'

    def test_ships_from_override_when_still_empty(self):
        fields = run_cascade("Dispatch\nThis seller ships from Poland", '', [lambda text, markup: {}])
        assert fields['shipped_from'] == 'Poland'
