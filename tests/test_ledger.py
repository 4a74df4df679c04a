"""Tests for the progress ledger and atomic checkpoint files."""

import json
import os

import pytest
from unittest.mock import patch

from src.shared.checkpoint import load_checkpoint, save_checkpoint
from src.shared.errors import LedgerError
from src.shared.ledger import ProgressLedger
from src.shared.seller_schema import FetchOutcome, LedgerStatus, ProgressEntry


class TestCheckpoint:
    """Atomic save/load helpers."""

    def test_round_trip(self, tmp_path):
        path = str(tmp_path / 'nested' / 'progress.json')
        save_checkpoint({'1': {'status': 'ok'}}, path)
        assert load_checkpoint(path) == {'1': {'status': 'ok'}}

    def test_missing_file(self, tmp_path):
        assert load_checkpoint(str(tmp_path / 'missing.json')) is None

    def test_failed_replace_leaves_old_file_and_no_temp(self, tmp_path):
        path = tmp_path / 'progress.json'
        save_checkpoint({'1': {'status': 'ok'}}, str(path))

        with patch('src.shared.checkpoint.os.replace', side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                save_checkpoint({'2': {'status': 'ok'}}, str(path))

        assert json.loads(path.read_text()) == {'1': {'status': 'ok'}}
        assert [p.name for p in tmp_path.iterdir()] == ['progress.json']


class TestProgressLedger:

    def test_fresh_ledger(self, tmp_path):
        ledger = ProgressLedger(str(tmp_path / 'progress.json'))
        assert ledger.load() == {}
        assert ledger.pending_ids(1, 3) == [1, 2, 3]

    def test_record_and_flush(self, tmp_path):
        path = tmp_path / 'progress.json'
        ledger = ProgressLedger(str(path))
        ledger.load()
        ledger.record(10, ProgressEntry(LedgerStatus.OK))
        ledger.record(2, ProgressEntry(LedgerStatus.EMPTY))
        ledger.record(7, ProgressEntry(LedgerStatus.ERROR, error='HTTP 500'))
        ledger.flush()

        assert json.loads(path.read_text()) == {
            '2': {'status': 'empty'},
            '7': {'status': 'error', 'error': 'HTTP 500'},
            '10': {'status': 'ok'},
        }

    def test_flush_replaces_whole_file(self, tmp_path):
        path = tmp_path / 'progress.json'
        path.write_text(json.dumps({'1': {'status': 'ok'}, '2': {'status': 'empty'}}))

        ledger = ProgressLedger(str(path))
        ledger.load()
        ledger.record(3, ProgressEntry(LedgerStatus.OK))
        ledger.flush()

        assert set(json.loads(path.read_text())) == {'1', '2', '3'}

    def test_pending_and_count(self, tmp_path):
        path = tmp_path / 'progress.json'
        path.write_text(json.dumps({str(i): {'status': 'ok'} for i in (1, 2, 5, 50)}))
        ledger = ProgressLedger(str(path))
        ledger.load()

        assert ledger.pending_ids(1, 6) == [3, 4, 6]
        assert ledger.count_in_range(1, 10) == 3
        assert ledger.has(50)
        assert len(ledger) == 4

    def test_error_entry_counts_as_done(self, tmp_path):
        ledger = ProgressLedger(str(tmp_path / 'progress.json'))
        ledger.load()
        ledger.record(4, ProgressEntry.from_outcome(FetchOutcome.blocked(4, '', 'Blocked/challenge page (HTTP 403): x')))

        assert 4 not in ledger.pending_ids(1, 5)
        assert ledger.get(4).error.startswith('Blocked/challenge page')

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / 'progress.json'
        path.write_text('{"1": {"status": "ok"')
        with pytest.raises(LedgerError, match='Cannot read progress file'):
            ProgressLedger(str(path)).load()

    def test_invalid_utf8_raises(self, tmp_path):
        path = tmp_path / 'progress.json'
        path.write_bytes(b'{"1": {"status": "ok"}, "\xff": 1}')
        with pytest.raises(LedgerError, match='Cannot read progress file'):
            ProgressLedger(str(path)).load()

    def test_non_object_file_raises(self, tmp_path):
        path = tmp_path / 'progress.json'
        path.write_text('[1, 2, 3]')
        with pytest.raises(LedgerError):
            ProgressLedger(str(path)).load()

    def test_unknown_status_raises(self, tmp_path):
        path = tmp_path / 'progress.json'
        path.write_text(json.dumps({'1': {'status': 'maybe'}}))
        with pytest.raises(LedgerError, match="id '1'"):
            ProgressLedger(str(path)).load()

    @pytest.mark.skipif(os.name == 'nt' or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
    def test_unwritable_directory(self, tmp_path):
        locked = tmp_path / 'locked'
        locked.mkdir()
        locked.chmod(0o500)
        try:
            ledger = ProgressLedger(str(locked / 'progress.json'))
            ledger.record(1, ProgressEntry(LedgerStatus.OK))
            with pytest.raises(LedgerError, match='Cannot write progress file'):
                ledger.flush()
        finally:
            locked.chmod(0o700)


class TestProgressEntry:

    def test_from_outcome(self):
        assert ProgressEntry.from_outcome(FetchOutcome.empty(1, '')).status == LedgerStatus.EMPTY
        entry = ProgressEntry.from_outcome(FetchOutcome.transient(1, '', 'HTTP 502'))
        assert entry.to_dict() == {'status': 'error', 'error': 'HTTP 502'}

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(ValueError):
            ProgressEntry.from_dict('ok')
