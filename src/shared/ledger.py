"""Progress ledger for resumable seller scraping.

The ledger maps seller id -> ProgressEntry. It is loaded once at start-up,
mutated in memory while a run progresses and flushed as a whole (never
appended) to a JSON file. Any id present in the ledger is skipped by later
runs, including ids recorded with status ``error``.

Only the batch controller owns and flushes a ledger, so no locking is done
here.
"""

import logging
from typing import Dict, Iterator, List, Optional

from src.shared.checkpoint import load_checkpoint, save_checkpoint
from src.shared.errors import LedgerError
from src.shared.seller_schema import ProgressEntry

__all__ = [
    'ProgressLedger',
]


class ProgressLedger:
    """Persisted mapping of seller id to outcome status.

    Usage:
        ledger = ProgressLedger('results/progress.json')
        ledger.load()
        if not ledger.has(3958):
            ledger.record(3958, ProgressEntry(LedgerStatus.OK))
        ledger.flush()
    """

    def __init__(self, path: str):
        self.path = path
        self._entries: Dict[int, ProgressEntry] = {}

    def load(self) -> Dict[int, ProgressEntry]:
        """Read the ledger file, replacing in-memory state.

        Returns:
            The loaded mapping (empty if the file doesn't exist)

        Raises:
            LedgerError: If the file exists but cannot be read or parsed
        """
        try:
            data = load_checkpoint(self.path)
        except (OSError, ValueError) as e:
            raise LedgerError(f"Cannot read progress file {self.path}: {e}") from e

        entries: Dict[int, ProgressEntry] = {}
        if data is None:
            logging.info(f"No progress file at {self.path}, starting fresh")
        elif not isinstance(data, dict):
            raise LedgerError(f"Progress file {self.path} must contain a JSON object")
        else:
            for key, value in data.items():
                try:
                    entries[int(key)] = ProgressEntry.from_dict(value)
                except ValueError as e:
                    raise LedgerError(f"Invalid progress entry for id {key!r} in {self.path}: {e}") from e

        self._entries = entries
        return dict(entries)

    def has(self, seller_id: int) -> bool:
        return seller_id in self._entries

    def get(self, seller_id: int) -> Optional[ProgressEntry]:
        return self._entries.get(seller_id)

    def record(self, seller_id: int, entry: ProgressEntry) -> None:
        """Set the entry for an id in memory. Call flush() to persist."""
        self._entries[seller_id] = entry

    def flush(self) -> None:
        """Write the full mapping to disk atomically, replacing the old file.

        Raises:
            LedgerError: If the file cannot be written
        """
        data = {str(seller_id): entry.to_dict() for seller_id, entry in sorted(self._entries.items())}
        try:
            save_checkpoint(data, self.path)
        except OSError as e:
            raise LedgerError(f"Cannot write progress file {self.path}: {e}") from e

    def count_in_range(self, from_id: int, to_id: int) -> int:
        """Number of recorded ids within [from_id, to_id]."""
        return sum(1 for seller_id in self._entries if from_id <= seller_id <= to_id)

    def pending_ids(self, from_id: int, to_id: int) -> List[int]:
        """Ids in [from_id, to_id] without an entry, ascending."""
        return [seller_id for seller_id in range(from_id, to_id + 1) if seller_id not in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[int]:
        return iter(self._entries)
