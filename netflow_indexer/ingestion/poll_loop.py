"""
Poll loop: chain head vs. cursor, one block at a time, strictly in order.

IDLE -> FETCHING_HEIGHT -> PROCESSING_BLOCK -> ADVANCING_CURSOR -> IDLE, then a
fixed delay. Per iteration every block in (cursor, head] is processed in
increasing order; after a block's transaction commits the cursor is advanced
and a fresh snapshot is published to the NetflowCache. The first failure
ends the iteration with the cursor untouched, so the next iteration retries
from the same block and later blocks are never attempted out of order.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum

from netflow_indexer.api_server.cache import NetflowCache, NetflowSnapshot
from netflow_indexer.chain.client import ChainClient
from netflow_indexer.core.exceptions import IndexerError
from netflow_indexer.database.database import Ledger
from netflow_indexer.indexer_logging import get_logger
from netflow_indexer.ingestion.processor import BlockProcessor

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_SEC = 0.9
DEFAULT_HEARTBEAT_INTERVAL_SEC = 30.0


class LoopState(str, Enum):
    IDLE = "idle"
    FETCHING_HEIGHT = "fetching_height"
    PROCESSING_BLOCK = "processing_block"
    ADVANCING_CURSOR = "advancing_cursor"


@dataclass
class LoopStats:
    """Mutable counters for heartbeat and monitoring."""

    iterations: int = 0
    blocks_committed: int = 0
    transfers_inserted: int = 0
    failures: int = 0
    last_committed_block: int | None = None
    last_head: int | None = None
    last_error: str | None = None


class PollLoop:
    """Single-writer ingestion loop; run on one background thread."""

    def __init__(
        self,
        chain: ChainClient,
        ledger: Ledger,
        processor: BlockProcessor,
        cache: NetflowCache,
        *,
        poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
        heartbeat_interval_sec: float = DEFAULT_HEARTBEAT_INTERVAL_SEC,
        max_blocks_per_iteration: int | None = None,
    ) -> None:
        if poll_interval_sec < 0:
            raise ValueError("poll_interval_sec must be non-negative")
        if max_blocks_per_iteration is not None and max_blocks_per_iteration < 1:
            raise ValueError("max_blocks_per_iteration must be >= 1")
        self._chain = chain
        self._ledger = ledger
        self._processor = processor
        self._cache = cache
        self._poll_interval_sec = poll_interval_sec
        self._heartbeat_interval_sec = max(1.0, heartbeat_interval_sec)
        self._max_blocks = max_blocks_per_iteration
        self._state = LoopState.IDLE
        self._stats = LoopStats()

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def stats(self) -> LoopStats:
        return self._stats

    def _record_failure(self, event: str, error: Exception, **context: object) -> None:
        self._stats.failures += 1
        self._stats.last_error = str(error)
        logger.warning(event, error=str(error), error_type=type(error).__name__, **context)

    def run_once(self, stop_event: threading.Event | None = None) -> int:
        """Run one iteration. Returns the number of blocks committed."""
        self._stats.iterations += 1
        try:
            self._state = LoopState.FETCHING_HEIGHT
            try:
                head = self._chain.head_height()
                last = self._ledger.get_cursor()
            except IndexerError as e:
                self._record_failure("poll_head_failed", e)
                return 0
            self._stats.last_head = head
            if last is None:
                # Cursor is normally set at bootstrap; without it start from the head (no backfill)
                self._ledger.initialize_cursor(head)
                return 0
            if head <= last:
                return 0

            end = head if self._max_blocks is None else min(head, last + self._max_blocks)
            committed = 0
            for block_number in range(last + 1, end + 1):
                if stop_event is not None and stop_event.is_set():
                    break
                self._state = LoopState.PROCESSING_BLOCK
                try:
                    result = self._processor.process_block(block_number)
                    self._state = LoopState.ADVANCING_CURSOR
                    self._ledger.advance_cursor(block_number)
                except IndexerError as e:
                    self._record_failure("poll_block_failed", e, block_number=block_number)
                    break
                self._cache.publish(NetflowSnapshot.from_totals(result.totals, block_number))
                committed += 1
                self._stats.blocks_committed += 1
                self._stats.transfers_inserted += result.inserted
                self._stats.last_committed_block = block_number
                if result.log_count:
                    logger.info(
                        "block_committed",
                        block_number=block_number,
                        logs=result.log_count,
                        inserted=result.inserted,
                        duplicates=result.duplicates,
                        skipped=result.skipped,
                        inflow=result.totals.inflow,
                        outflow=result.totals.outflow,
                    )
                else:
                    logger.debug("block_committed_empty", block_number=block_number)
            return committed
        finally:
            self._state = LoopState.IDLE

    def run_forever(self, stop_event: threading.Event) -> None:
        """
        Repeat run_once until stop_event is set, sleeping poll_interval_sec
        between iterations. Unexpected errors in an iteration are logged and
        the loop continues.
        """
        logger.info(
            "poll_loop_started",
            poll_interval_sec=self._poll_interval_sec,
            watch_count=len(self._processor.watch_addresses),
        )
        last_heartbeat = time.monotonic()
        while not stop_event.is_set():
            try:
                self.run_once(stop_event)
            except Exception as e:
                self._stats.failures += 1
                self._stats.last_error = str(e)
                logger.exception("poll_iteration_failed", error=str(e))
            now = time.monotonic()
            if now - last_heartbeat >= self._heartbeat_interval_sec:
                logger.info(
                    "poll_loop_heartbeat",
                    iterations=self._stats.iterations,
                    blocks_committed=self._stats.blocks_committed,
                    transfers_inserted=self._stats.transfers_inserted,
                    failures=self._stats.failures,
                    last_committed_block=self._stats.last_committed_block,
                    last_head=self._stats.last_head,
                    last_error=self._stats.last_error,
                )
                last_heartbeat = now
            stop_event.wait(timeout=self._poll_interval_sec)
        logger.info("poll_loop_stopped", iterations=self._stats.iterations)
