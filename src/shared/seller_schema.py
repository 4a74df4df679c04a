"""
Seller Schema - Central data model for seller records and fetch outcomes.

Provides the canonical result row, the tagged outcome produced by a fetch
client for one seller id, and the per-id entry persisted in the progress
ledger.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


__all__ = [
    'CSV_COLUMNS',
    'FIELD_NAMES',
    'FetchOutcome',
    'LedgerStatus',
    'OutcomeKind',
    'ProgressEntry',
    'SellerRecord',
]


# The four extracted text fields, in output order
FIELD_NAMES: List[str] = [
    'business_name',
    'vat_number',
    'registered_address',
    'shipped_from',
]

CSV_COLUMNS: List[str] = ['seller_id'] + FIELD_NAMES + ['source_url']


@dataclass
class SellerRecord:
    """One result row for a verified seller.

    All text fields may be empty. A record whose four text fields are all
    empty means "no seller exists at this id".
    """
    seller_id: int
    business_name: str = ''
    vat_number: str = ''
    registered_address: str = ''
    shipped_from: str = ''
    source_url: str = ''

    @classmethod
    def from_fields(cls, seller_id: int, fields: Dict[str, str], source_url: str = '') -> 'SellerRecord':
        """Build a record from a (possibly partial) field map."""
        return cls(
            seller_id=seller_id,
            source_url=source_url,
            **{name: fields.get(name) or '' for name in FIELD_NAMES}
        )

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in FIELD_NAMES)

    def to_row(self) -> Dict[str, Any]:
        """Convert to a dict keyed by CSV_COLUMNS."""
        return asdict(self)


class OutcomeKind(str, Enum):
    """Classification of a single seller fetch."""
    FOUND = 'found'
    EMPTY = 'empty'
    BLOCKED = 'blocked'
    TRANSIENT_ERROR = 'transient_error'
    FATAL_ERROR = 'fatal_error'


@dataclass
class FetchOutcome:
    """Terminal result of fetching one seller id, retries included.

    Attributes:
        kind: Outcome classification
        seller_id: The seller id that was fetched
        source_url: Locator used for the fetch
        record: Extracted record (FOUND only)
        reason: Human-readable failure reason (BLOCKED and error kinds)
        attempts: Number of attempts consumed
    """
    kind: OutcomeKind
    seller_id: int
    source_url: str = ''
    record: Optional[SellerRecord] = None
    reason: Optional[str] = None
    attempts: int = 1

    @classmethod
    def found(cls, record: SellerRecord, attempts: int = 1) -> 'FetchOutcome':
        """Wrap a record; an all-empty record becomes EMPTY."""
        if record.is_empty():
            return cls.empty(record.seller_id, record.source_url, attempts=attempts)
        return cls(OutcomeKind.FOUND, record.seller_id, record.source_url, record=record, attempts=attempts)

    @classmethod
    def empty(cls, seller_id: int, source_url: str, attempts: int = 1) -> 'FetchOutcome':
        return cls(OutcomeKind.EMPTY, seller_id, source_url, attempts=attempts)

    @classmethod
    def blocked(cls, seller_id: int, source_url: str, reason: str, attempts: int = 1) -> 'FetchOutcome':
        return cls(OutcomeKind.BLOCKED, seller_id, source_url, reason=reason, attempts=attempts)

    @classmethod
    def transient(cls, seller_id: int, source_url: str, reason: str, attempts: int = 1) -> 'FetchOutcome':
        return cls(OutcomeKind.TRANSIENT_ERROR, seller_id, source_url, reason=reason, attempts=attempts)

    @classmethod
    def fatal(cls, seller_id: int, source_url: str, reason: str, attempts: int = 1) -> 'FetchOutcome':
        return cls(OutcomeKind.FATAL_ERROR, seller_id, source_url, reason=reason, attempts=attempts)

    @property
    def is_terminal_success(self) -> bool:
        return self.kind in (OutcomeKind.FOUND, OutcomeKind.EMPTY)


class LedgerStatus(str, Enum):
    """Status persisted per seller id in progress.json."""
    OK = 'ok'
    EMPTY = 'empty'
    ERROR = 'error'


@dataclass
class ProgressEntry:
    """Ledger entry for one seller id. Any entry marks the id as done."""
    status: LedgerStatus
    error: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: FetchOutcome) -> 'ProgressEntry':
        """Collapse an outcome into its ledger status.

        BLOCKED and both error kinds are stored as ``error`` with the reason
        preserved.
        """
        if outcome.kind == OutcomeKind.FOUND:
            return cls(LedgerStatus.OK)
        if outcome.kind == OutcomeKind.EMPTY:
            return cls(LedgerStatus.EMPTY)
        return cls(LedgerStatus.ERROR, error=outcome.reason or outcome.kind.value)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProgressEntry':
        """Parse a stored entry.

        Raises:
            ValueError: If the status is missing or unknown
        """
        if not isinstance(data, dict):
            raise ValueError(f"Ledger entry must be an object, got {type(data).__name__}")
        status = LedgerStatus(data.get('status'))
        return cls(status, error=data.get('error'))

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'status': self.status.value}
        if self.status == LedgerStatus.ERROR and self.error:
            result['error'] = self.error
        return result
