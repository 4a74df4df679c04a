"""Field extraction for B&Q (diy.com) verified seller pages.

Extracts four fields from a rendered seller page:
- Business name
- VAT number
- Registered address
- Shipped from

The page is loosely structured, so extraction is a cascade of strategies,
each more permissive than the last. Every strategy has the same signature,
``(text, markup) -> partial field map``, and the first valid value per field
wins:

1. extract_label_blocks: label lines followed by value line(s), the layout
   the modern seller page renders
2. extract_structural_pairs: <dt>/<dd> pairs, two-cell table rows and
   "Label: value" lines
3. extract_pattern_fallback: regexes on the text, including the "line above
   the VAT number label" heuristic for the business name

Every candidate passes its field validator before it can win, so a rejected
value (e.g. a form label such as "Email" captured as a business name) falls
through to the next strategy instead of blocking it.
"""

import logging
import re
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup

from src.shared.constants import EXTRACTION
from src.shared.seller_schema import FIELD_NAMES, SellerRecord
from src.shared.text import clean_text, normalize_html, normalize_label, split_lines

__all__ = [
    'EXTRACTION_STRATEGIES',
    'clean_address',
    'extract_label_blocks',
    'extract_pattern_fallback',
    'extract_seller_fields',
    'extract_structural_pairs',
    'find_value_by_labels',
    'is_bad_business_name',
    'looks_like_business_name',
    'looks_like_vat',
    'parse_seller_page',
    'run_cascade',
    'validate_field',
]


FieldMap = Dict[str, str]
Strategy = Callable[[str, str], FieldMap]


# Section headings that end a multi-line capture and are cut from addresses
STOP_HEADINGS = [
    'this seller ships from',
    'how to contact a b&q verified seller',
    'returns policy',
    'got a question about your order',
]

KNOWN_LABELS = [
    'business name',
    'vat number',
    'vat no',
    'registered address',
    'business address',
    'shipped from',
    'ships from',
    *STOP_HEADINGS,
    # contact form noise
    'email',
    'phone',
    'telephone',
    'message',
    'subject',
    'contact seller',
]

NOISE_TOKENS = frozenset({'copy', 'open', 'close', 'down chevron'})

BAD_BUSINESS_NAMES = frozenset({
    '',
    'email',
    'e-mail',
    'phone',
    'telephone',
    'message',
    'subject',
    'name',
    'business name',
    'vat number',
    'registered address',
    'business address',
    'shipped from',
    'ships from',
    'submit',
    'continue',
})

BANNED_NAME_PREFIXES = (
    'how to contact',
    'returns policy',
    'got a question',
    'this seller ships from',
    'contact seller',
    'down chevron',
)

ADDRESS_CUT_PHRASES = [
    'this seller ships from',
    'how to contact a b&q verified seller',
    'got a question about your order',
    'returns policy',
]

# Label synonyms used by the structural strategy, per field
FIELD_LABELS: Dict[str, List[str]] = {
    'business_name': ['Business name', 'Seller name', 'Company name'],
    'vat_number': ['VAT number', 'VAT No', 'VAT no.'],
    'registered_address': ['Registered address', 'Business address', 'Company address'],
    'shipped_from': ['Shipped from', 'Ships from', 'This seller ships from'],
}

_VAT_SHAPE_RE = re.compile(r'^(?:[A-Z]{2}\s*)?[A-Z0-9 -]{8,20}$', re.IGNORECASE)
_VAT_DIGITS_RE = re.compile(r'\d{8,}')
_COLON_PAIR_RE = re.compile(r'^([A-Za-z][A-Za-z\s()/&.-]{2,60})\s*:\s*(.+)$')
_SHIPS_FROM_RE = re.compile(r'This seller ships from\s+([^\n]+)', re.IGNORECASE)


# ---------------------------------------------------------------------------
# Field validators
# ---------------------------------------------------------------------------

def looks_like_vat(value: str) -> bool:
    """UK/EU style VAT id: optional country prefix and 8+ consecutive digits."""
    v = clean_text(value)
    return bool(_VAT_SHAPE_RE.match(v)) and bool(_VAT_DIGITS_RE.search(v))


def is_bad_business_name(value: str) -> bool:
    return normalize_label(value) in BAD_BUSINESS_NAMES


def looks_like_business_name(value: str) -> bool:
    """Reject form labels, section headings and over-long lines."""
    v = clean_text(value)
    if not v or is_bad_business_name(v):
        return False
    if len(v) > EXTRACTION.MAX_BUSINESS_NAME_LENGTH:
        return False
    n = normalize_label(v)
    return not any(n.startswith(prefix) for prefix in BANNED_NAME_PREFIXES)


def clean_address(value: str) -> str:
    """Join address lines with ', ' and cut off any leaked section heading."""
    address = re.sub(r'\n+', ', ', clean_text(value))
    for phrase in ADDRESS_CUT_PHRASES:
        idx = address.lower().find(phrase)
        if idx >= 0:
            address = re.sub(r'[,\s]+$', '', address[:idx].strip())
    return address


def validate_field(field: str, value: Optional[str]) -> str:
    """Return the cleaned value if it is acceptable for the field, else ''."""
    if not value:
        return ''
    if field == 'business_name':
        v = clean_text(value)
        return v if looks_like_business_name(v) else ''
    if field == 'vat_number':
        v = clean_text(value)
        return v if looks_like_vat(v) else ''
    if field == 'registered_address':
        return clean_address(value)
    return re.sub(r'\n+', ', ', clean_text(value))


# ---------------------------------------------------------------------------
# Strategy 1: label blocks
# ---------------------------------------------------------------------------

def _matches_any(line_norm: str, labels: Iterable[str]) -> bool:
    return any(line_norm == label or line_norm.startswith(label) for label in labels)


def _is_known_label(line: str) -> bool:
    return _matches_any(normalize_label(line), KNOWN_LABELS)


def _is_stop_heading(line: str) -> bool:
    return _matches_any(normalize_label(line), STOP_HEADINGS)


def _same_line_value(line: str, label: str) -> str:
    """Value written on the label's own line ("Label: value" or "Label value")."""
    match = re.match(
        rf'^\s*{re.escape(label)}(?:\s*[:\-–]\s*|\s+)(.+)$',
        line,
        re.IGNORECASE,
    )
    if not match:
        return ''
    return re.sub(r'^[:\-–\s]+', '', clean_text(match.group(1)))


def _collect_after_label(
    lines: Sequence[str],
    target_labels: Sequence[str],
    max_lines: int,
    keep_multiline: bool = False,
) -> List[str]:
    """Every value found after any occurrence of the target labels, in page order."""
    targets = [normalize_label(label) for label in target_labels]
    candidates: List[str] = []

    for i, line in enumerate(lines):
        if not _matches_any(normalize_label(line), targets):
            continue

        same_line = ''
        for label in target_labels:
            same_line = _same_line_value(line, label)
            if same_line:
                break
        if same_line:
            candidates.append(same_line)
            continue

        collected: List[str] = []
        for following in lines[i + 1:]:
            if len(collected) >= max_lines:
                break
            if _is_stop_heading(following) or _is_known_label(following):
                break
            if normalize_label(following) in NOISE_TOKENS:
                continue
            collected.append(following)

        if collected:
            candidates.append(', '.join(collected) if keep_multiline else collected[0])

    return candidates


def extract_label_blocks(text: str, markup: str = '') -> FieldMap:
    """Values from pages that render as

        Business name
        ACME LTD
        VAT number
        GB123...
        Registered address
        ...
    """
    lines = split_lines(text)

    business = _collect_after_label(
        lines, ['Business name'], max_lines=EXTRACTION.BUSINESS_NAME_MAX_LINES)
    vat = _collect_after_label(
        lines, ['VAT number', 'VAT no', 'VAT No.'], max_lines=EXTRACTION.VAT_MAX_LINES)
    address = _collect_after_label(
        lines, ['Registered address', 'Business address'],
        max_lines=EXTRACTION.ADDRESS_MAX_LINES, keep_multiline=True)
    shipped = (
        _collect_after_label(lines, ['Shipped from', 'Ships from'],
                             max_lines=EXTRACTION.SHIPPED_FROM_MAX_LINES)
        + _collect_after_label(lines, ['This seller ships from'],
                               max_lines=EXTRACTION.SHIPPED_FROM_MAX_LINES)
    )

    return {
        'business_name': _first_valid('business_name', business),
        'vat_number': _first_valid('vat_number', vat),
        'registered_address': _first_valid('registered_address', address),
        'shipped_from': _first_valid('shipped_from', shipped),
    }


def _first_valid(field: str, candidates: Iterable[str]) -> str:
    for candidate in candidates:
        value = validate_field(field, candidate)
        if value:
            return value
    return ''


# ---------------------------------------------------------------------------
# Strategy 2: structural pairs
# ---------------------------------------------------------------------------

def _inline_text(tag) -> str:
    return re.sub(r'\s+', ' ', tag.get_text(' ')).strip()


def _dt_dd_pairs(soup: BeautifulSoup) -> FieldMap:
    pairs: FieldMap = {}
    for dt in soup.find_all('dt'):
        dd = dt.find_next_sibling()
        if dd is None or dd.name != 'dd':
            continue
        key, value = _inline_text(dt), _inline_text(dd)
        if key and value:
            pairs.setdefault(key, value)
    return pairs


def _table_pairs(soup: BeautifulSoup) -> FieldMap:
    pairs: FieldMap = {}
    for row in soup.find_all('tr'):
        cells = row.find_all(['th', 'td'], recursive=False)
        if len(cells) != 2:
            continue
        key, value = _inline_text(cells[0]), _inline_text(cells[1])
        if key and value:
            pairs.setdefault(key, value)
    return pairs


def _colon_pairs(text: str) -> FieldMap:
    pairs: FieldMap = {}
    for line in split_lines(text):
        match = _COLON_PAIR_RE.match(line)
        if not match:
            continue
        key, value = clean_text(match.group(1)), clean_text(match.group(2))
        if key and value:
            pairs.setdefault(key, value)
    return pairs


def find_value_by_labels(pairs: FieldMap, labels: Sequence[str], field: Optional[str] = None) -> str:
    """Look a value up by exact label first, then by "key contains label".

    When ``field`` is given, values failing that field's validator are skipped.
    """
    normalized = [(normalize_label(key), value) for key, value in pairs.items()]

    def accept(value: str) -> str:
        return validate_field(field, value) if field else value

    for label in labels:
        n = normalize_label(label)
        for key, value in normalized:
            if key == n and accept(value):
                return accept(value)

    for label in labels:
        n = normalize_label(label)
        for key, value in normalized:
            if n in key and accept(value):
                return accept(value)

    return ''


def extract_structural_pairs(text: str, markup: str = '') -> FieldMap:
    """dt/dd, table and colon pairs; structural pairs win on key collisions."""
    merged: FieldMap = dict(_colon_pairs(text))
    if markup:
        soup = BeautifulSoup(markup, 'html.parser')
        merged.update(_table_pairs(soup))
        merged.update(_dt_dd_pairs(soup))

    return {
        field: find_value_by_labels(merged, labels, field)
        for field, labels in FIELD_LABELS.items()
    }


# ---------------------------------------------------------------------------
# Strategy 3: pattern fallback
# ---------------------------------------------------------------------------

def _search(pattern: str, text: str, flags: int = re.IGNORECASE) -> str:
    match = re.search(pattern, text, flags)
    return match.group(1).strip() if match else ''


def _name_above_label(lines: Sequence[str], labels: Sequence[str], lookback: int) -> str:
    for i, line in enumerate(lines):
        if not _matches_any(normalize_label(line), labels):
            continue
        for k in range(i - 1, max(0, i - lookback) - 1, -1):
            if looks_like_business_name(lines[k]):
                return clean_text(lines[k])
    return ''


def extract_pattern_fallback(text: str, markup: str = '') -> FieldMap:
    """Regex matches of "label\\nvalue" plus business-name derivation."""
    t = clean_text(text)
    lines = split_lines(t)

    business_name = _search(r'Business\s+name\s*\n+([^\n]+)', t)
    vat_number = _search(r'VAT\s+(?:number|no\.?)\s*\n+([A-Z0-9 -]{8,25})', t)
    registered_address = _search(
        r'Registered\s+address\s*\n+([\s\S]{0,250}?)'
        r'(?:\n\s*(?:This seller ships from|Shipped\s+from|How to contact|Returns policy|Got a question)\b|\n{2,}|$)',
        t,
    )
    shipped_from = _search(r'This seller ships from\s+([^\n]+)', t)
    if not shipped_from:
        shipped_from = _search(r'(?:Shipped\s+from|Ships\s+from)\s*\n+([^\n]+)', t)

    if not looks_like_business_name(business_name):
        business_name = (
            _name_above_label(lines, ['vat number', 'vat no'], lookback=3)
            or _name_above_label(lines, ['registered address'], lookback=4)
        )

    if not business_name:
        # upper-case company-like line directly above the VAT label
        candidate = _search(r"([A-Z][A-Z0-9&'().,\- ]{3,})\s*\n+\s*VAT\s+(?:number|no\.?)", t, flags=0)
        if looks_like_business_name(candidate):
            business_name = clean_text(candidate)

    return {
        'business_name': business_name,
        'vat_number': vat_number,
        'registered_address': registered_address,
        'shipped_from': shipped_from,
    }


EXTRACTION_STRATEGIES: List[Strategy] = [
    extract_label_blocks,
    extract_structural_pairs,
    extract_pattern_fallback,
]


# ---------------------------------------------------------------------------
# Cascade
# ---------------------------------------------------------------------------

def run_cascade(text: str, markup: str = '', strategies: Optional[Sequence[Strategy]] = None) -> FieldMap:
    """Reduce strategy results to one value per field, first valid wins."""
    result: FieldMap = {field: '' for field in FIELD_NAMES}
    for strategy in strategies or EXTRACTION_STRATEGIES:
        if all(result.values()):
            break
        try:
            partial = strategy(text, markup)
        except Exception as e:
            logging.warning(f"Extraction strategy {strategy.__name__} failed: {e}")
            continue
        for field in FIELD_NAMES:
            if not result[field]:
                result[field] = validate_field(field, partial.get(field))

    if not result['shipped_from']:
        match = _SHIPS_FROM_RE.search(text or '')
        if match:
            result['shipped_from'] = clean_text(match.group(1))

    return result


def extract_seller_fields(markup: str, text: Optional[str] = None) -> FieldMap:
    """Best-effort field map for a seller page. Never raises.

    Args:
        markup: Raw page HTML (may be empty when only text is available)
        text: Pre-normalised text; derived from markup when omitted

    Returns:
        Dict with business_name, vat_number, registered_address and
        shipped_from; missing values are ''
    """
    if text is None:
        try:
            text = normalize_html(markup)
        except Exception as e:
            logging.warning(f"Could not normalise page markup: {e}")
            text = ''
    return run_cascade(text, markup or '')


def parse_seller_page(markup: str, seller_id: int, source_url: str = '') -> SellerRecord:
    """Parse a rendered seller page into a SellerRecord."""
    fields = extract_seller_fields(markup)
    return SellerRecord.from_fields(seller_id, fields, source_url)
