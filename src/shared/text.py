"""Text normalisation for rendered seller pages.

normalize_html() turns markup into plain text whose line breaks follow the
page's block structure. Every extraction strategy works line by line, so
the output must be deterministic for a given input.
"""

import re

from bs4 import BeautifulSoup

__all__ = [
    'BLOCK_TAGS',
    'clean_text',
    'normalize_html',
    'normalize_label',
    'split_lines',
    'strip_scripts_and_styles',
]


DROP_TAGS = ['head', 'title', 'script', 'style', 'noscript', 'template']

BLOCK_TAGS = [
    'p', 'div', 'li', 'ul', 'ol', 'tr', 'td', 'th', 'table', 'button',
    'section', 'article', 'header', 'footer', 'main', 'aside', 'nav',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'dd', 'dt', 'dl',
]

_SCRIPT_RE = re.compile(r'<script\b[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r'<style\b[^>]*>.*?</style>', re.IGNORECASE | re.DOTALL)


def clean_text(value: str) -> str:
    """Collapse whitespace while keeping line structure.

    NBSP becomes a space, CR becomes LF, runs of spaces/tabs collapse to one
    space, spaces around line breaks are dropped and more than one blank line
    collapses to a single blank line.
    """
    if not value:
        return ''
    text = value.replace('\u00a0', ' ').replace('\r\n', '\n').replace('\r', '\n')
    text = re.sub(r'[ \t\f\v]+', ' ', text)
    text = re.sub(r' *\n *', '\n', text)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def normalize_html(markup: str) -> str:
    """Convert markup to plain text with block-level line breaks.

    Scripts and styles are removed, entities decoded, <br> and the end of
    every block element become line breaks. Malformed markup is accepted as
    is; unknown or unmatched tags are simply dropped.

    Args:
        markup: Raw HTML (plain text is returned cleaned)

    Returns:
        Normalised text, never None
    """
    if not markup:
        return ''
    soup = BeautifulSoup(markup, 'html.parser')
    for tag in soup(DROP_TAGS):
        tag.decompose()
    for br in soup.find_all('br'):
        br.replace_with('\n')
    for block in soup.find_all(BLOCK_TAGS):
        block.append('\n')
    # space separator keeps adjacent inline elements apart
    return clean_text(soup.get_text(separator=' '))


def split_lines(text: str) -> list:
    """Split normalised text into non-empty, cleaned lines."""
    return [line for line in (clean_text(raw) for raw in (text or '').split('\n')) if line]


def normalize_label(value: str) -> str:
    """Lowercase, collapse whitespace and strip trailing ':', '-' or '–'."""
    text = clean_text(value).lower()
    text = re.sub(r'\s+', ' ', text)
    text = re.sub(r'[:\-–]+$', '', text)
    return text.strip()


def strip_scripts_and_styles(markup: str) -> str:
    """Remove <script> and <style> blocks, keeping the rest of the markup."""
    if not markup:
        return ''
    return _STYLE_RE.sub(' ', _SCRIPT_RE.sub(' ', markup))
