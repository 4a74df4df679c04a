"""Diagnostic HTML dumps for pages that could not be parsed.

Files are named ``<reason>_<seller_id>.html`` (for example
``blocked_3958.html``). Writes are best effort: a failure is logged and never
affects the fetch outcome.
"""

import logging
import re
from pathlib import Path
from typing import Optional

__all__ = [
    'DebugStore',
]


class DebugStore:
    """Directory of raw markup dumps keyed by seller id and reason."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def path_for(self, seller_id: int, reason: str) -> Path:
        safe_reason = re.sub(r'[^a-z0-9_-]+', '_', reason.lower()).strip('_') or 'page'
        return self.directory / f"{safe_reason}_{seller_id}.html"

    def save(self, seller_id: int, reason: str, html: str) -> Optional[Path]:
        """Write the markup; return the path, or None if writing failed."""
        path = self.path_for(seller_id, reason)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(html or '', encoding='utf-8')
        except OSError as e:
            logging.debug(f"[seller {seller_id}] Could not write debug dump {path}: {e}")
            return None
        logging.debug(f"[seller {seller_id}] Saved debug dump {path}")
        return path
