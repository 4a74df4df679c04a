"""Batch controller: drives an id range through a fetch client.

Run phases: INIT -> RUNNING -> (DRAINING on interrupt) -> FLUSHED -> DONE.

- INIT loads the progress ledger, makes sure the results CSV exists and
  computes the pending ids ([from_id, to_id] minus recorded ids).
- RUNNING fetches pending ids one at a time (concurrency == 1) or in
  fixed-size batches. A batch is a barrier: every fetch in it settles
  before the next batch is dispatched, and pacing applies between batches.
- Outcomes are applied in completion order: FOUND records are appended to
  the CSV first, then the ledger entry is recorded. A crash between the two
  re-appends the row on resume (at-least-once rows).
- The ledger is flushed every ``flush_interval`` processed ids and always
  on the way out, whatever the exit path.

The shutdown flag is only checked between items/batches; an in-flight fetch
always finishes its own retries first.
"""

import asyncio
import logging
import signal
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from src.shared.constants import BATCH, LEDGER
from src.shared.delays import Sleeper, pace
from src.shared.export_service import CsvResultSink
from src.shared.fetch_client import SellerFetchClient
from src.shared.ledger import ProgressLedger
from src.shared.seller_schema import FetchOutcome, OutcomeKind, ProgressEntry

__all__ = [
    'BatchController',
    'RunContext',
    'RunPhase',
    'RunSummary',
    'install_signal_handlers',
]


class RunPhase(str, Enum):
    INIT = 'init'
    RUNNING = 'running'
    DRAINING = 'draining'
    FLUSHED = 'flushed'
    DONE = 'done'


@dataclass
class RunContext:
    """Explicit state of one scrape run.

    Attributes:
        from_id: First seller id (inclusive)
        to_id: Last seller id (inclusive)
        delay: Seconds between items (serial) or batches
        concurrency: Batch size; 1 selects serial mode
        flush_interval: Flush the ledger every N processed ids
        shutdown_requested: Set by request_shutdown(), checked between batches
        phase: Current RunPhase
    """
    from_id: int = BATCH.FROM_ID
    to_id: int = BATCH.TO_ID
    delay: float = BATCH.DELAY
    concurrency: int = BATCH.CONCURRENCY
    flush_interval: int = LEDGER.FLUSH_INTERVAL
    shutdown_requested: bool = False
    phase: RunPhase = RunPhase.INIT

    @property
    def total(self) -> int:
        return max(0, self.to_id - self.from_id + 1)

    def request_shutdown(self, reason: str = 'interrupt') -> bool:
        """Ask the run to stop after the in-flight item/batch.

        Returns:
            True if this call started the shutdown, False if already requested
        """
        if self.shutdown_requested:
            logging.info(f"Shutdown already in progress, ignoring {reason}")
            return False
        self.shutdown_requested = True
        logging.warning(f"Received {reason}, finishing in-flight work and saving progress...")
        return True


@dataclass
class RunSummary:
    total: int = 0
    already_done: int = 0
    processed: int = 0
    found: int = 0
    empty: int = 0
    errors: int = 0
    interrupted: bool = False
    error_ids: List[int] = field(default_factory=list)

    @property
    def done(self) -> int:
        return self.already_done + self.processed

    def describe(self) -> str:
        status = 'Interrupted' if self.interrupted else 'Finished'
        return (
            f"{status}: processed {self.processed} "
            f"(found {self.found}, empty {self.empty}, errors {self.errors}); "
            f"{self.done}/{self.total} ids in range done"
        )


class BatchController:
    """Owns the ledger and the result sink for the duration of a run.

    Usage:
        controller = BatchController(client, ledger, sink, RunContext(1, 100))
        summary = await controller.run()
    """

    def __init__(
        self,
        client: SellerFetchClient,
        ledger: ProgressLedger,
        sink: CsvResultSink,
        context: RunContext,
        sleep: Optional[Sleeper] = None,
    ):
        self.client = client
        self.ledger = ledger
        self.sink = sink
        self.context = context
        self._sleep = sleep or asyncio.sleep
        self.summary = RunSummary(total=context.total)
        self._since_flush = 0

    async def run(self) -> RunSummary:
        """Process every pending id in the range.

        Raises:
            LedgerError: If the progress file cannot be read or written
            ResultSinkError: If the results file cannot be created or appended
        """
        context = self.context
        context.phase = RunPhase.INIT

        self.ledger.load()
        self.sink.ensure()

        pending = self.ledger.pending_ids(context.from_id, context.to_id)
        self.summary.already_done = self.ledger.count_in_range(context.from_id, context.to_id)
        if self.summary.already_done:
            logging.info(f"Resuming - {self.summary.already_done} IDs already processed")
        logging.info(
            f"{len(pending)} IDs pending in {context.from_id}-{context.to_id} "
            f"(concurrency={context.concurrency}, delay={context.delay:.2f}s)"
        )

        context.phase = RunPhase.RUNNING
        try:
            if context.concurrency <= 1:
                await self._run_serial(pending)
            else:
                await self._run_batches(pending)
        finally:
            if context.shutdown_requested:
                context.phase = RunPhase.DRAINING
                self.summary.interrupted = True
            self.ledger.flush()
            context.phase = RunPhase.FLUSHED
            logging.info(f"Progress saved to {self.ledger.path}")

        logging.info(self.summary.describe())
        if self.summary.error_ids:
            logging.info(f"IDs with errors: {self.summary.error_ids}")
        context.phase = RunPhase.DONE
        return self.summary

    async def _run_serial(self, pending: List[int]) -> None:
        for index, seller_id in enumerate(pending):
            if self.context.shutdown_requested:
                break
            outcome = await self._fetch(seller_id)
            self._apply(outcome)
            if index < len(pending) - 1:
                await pace(self.context.delay, self._sleep, reason='between ids')

    async def _run_batches(self, pending: List[int]) -> None:
        size = self.context.concurrency
        for start in range(0, len(pending), size):
            if self.context.shutdown_requested:
                break
            batch = pending[start:start + size]
            completed: List[FetchOutcome] = []

            async def fetch_one(seller_id: int) -> None:
                completed.append(await self._fetch(seller_id))

            await asyncio.gather(*(fetch_one(seller_id) for seller_id in batch))
            for outcome in completed:
                self._apply(outcome)
            if start + size < len(pending):
                await pace(self.context.delay, self._sleep, reason='between batches')

    async def _fetch(self, seller_id: int) -> FetchOutcome:
        try:
            return await self.client.fetch(seller_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Fetch clients classify their own failures; this is a last resort
            logging.error(f"[seller {seller_id}] Fetch raised: {e}", exc_info=True)
            return FetchOutcome.fatal(seller_id, '', str(e) or type(e).__name__)

    def _apply(self, outcome: FetchOutcome) -> None:
        """Append a found record, then record the ledger entry."""
        summary = self.summary
        if outcome.kind == OutcomeKind.FOUND and outcome.record is not None:
            self.sink.append(outcome.record)
            summary.found += 1
            message = f"OK - {outcome.record.business_name or '(no name)'}"
        elif outcome.kind == OutcomeKind.EMPTY:
            summary.empty += 1
            message = "empty"
        else:
            summary.errors += 1
            summary.error_ids.append(outcome.seller_id)
            message = f"ERROR - {outcome.reason or outcome.kind.value}"

        self.ledger.record(outcome.seller_id, ProgressEntry.from_outcome(outcome))
        summary.processed += 1
        self._log_progress(outcome.seller_id, message)

        self._since_flush += 1
        if self._since_flush >= self.context.flush_interval:
            self.ledger.flush()
            self._since_flush = 0

    def _log_progress(self, seller_id: int, message: str) -> None:
        total = self.summary.total
        done = self.summary.done
        pct = (done / total * 100) if total else 100.0
        logging.info(f"[{done}/{total} {pct:.1f}%] ID {seller_id}: {message}")


def install_signal_handlers(context: RunContext, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """Route SIGINT/SIGTERM to context.request_shutdown().

    Uses the event loop's signal support where available and falls back to
    signal.signal() elsewhere (e.g. Windows).
    """
    loop = loop or asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, context.request_shutdown, sig.name)
        except (NotImplementedError, RuntimeError, ValueError):
            signal.signal(sig, lambda signum, frame: context.request_shutdown(signal.Signals(signum).name))
