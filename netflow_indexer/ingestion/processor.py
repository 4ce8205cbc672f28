"""
Block processor: one block's Transfer logs into ledger rows and totals.

For a block: fetch logs of the token contract filtered by the Transfer topic,
decode each into a TransferRecord (malformed logs are skipped with a warning),
then in one ledger transaction insert every record and apply the watch-list
inflow/outflow delta to the running totals.

Totals only count records whose insert actually created a row, so running
the same block twice (e.g. after a crash before the cursor write) leaves
both the ledger and the totals unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from netflow_indexer.chain.client import ChainClient
from netflow_indexer.core.exceptions import MalformedEventError
from netflow_indexer.database.database import Ledger
from netflow_indexer.database.models import NetflowTotals, TransferRecord
from netflow_indexer.indexer_logging import get_logger
from netflow_indexer.ingestion.decoder import decode_transfer, normalize_address
from netflow_indexer.utils.amounts import add_decimal

logger = get_logger(__name__)


@dataclass
class BlockResult:
    """Outcome of processing one block (after its transaction committed)."""

    block_number: int
    log_count: int = 0
    inserted: int = 0
    duplicates: int = 0
    skipped: int = 0
    inflow_delta: int = 0
    outflow_delta: int = 0
    totals_updated: bool = False
    totals: NetflowTotals = field(default_factory=NetflowTotals)


class BlockProcessor:
    """Decode, classify, and persist the Transfer events of one block at a time."""

    def __init__(
        self,
        chain: ChainClient,
        ledger: Ledger,
        *,
        token_address: str,
        watch_addresses: Iterable[str],
        transfer_topic: str,
    ) -> None:
        token = normalize_address(token_address)
        if not token:
            raise ValueError("token_address must be non-empty")
        self._chain = chain
        self._ledger = ledger
        self._token = token
        self._topic = transfer_topic
        self._watch = frozenset(
            normalize_address(a) for a in watch_addresses if normalize_address(a)
        )

    @property
    def watch_addresses(self) -> frozenset[str]:
        return self._watch

    def classify(self, record: TransferRecord) -> tuple[bool, bool]:
        """Return (is_inflow, is_outflow) for a record; both true for watched-to-watched."""
        return record.to_address in self._watch, record.from_address in self._watch

    def decode_logs(self, block_number: int) -> tuple[list[TransferRecord], int, int]:
        """Fetch and decode the block's logs. Returns (records, log_count, skipped)."""
        logs = self._chain.logs_in_range(self._token, self._topic, block_number, block_number)
        if not logs:
            return [], 0, 0
        timestamp = self._chain.block_timestamp(block_number)
        records: list[TransferRecord] = []
        skipped = 0
        for log in logs:
            try:
                records.append(decode_transfer(log, timestamp))
            except MalformedEventError as e:
                skipped += 1
                logger.warning(
                    "processor_log_skipped",
                    block_number=block_number,
                    tx_hash=log.transaction_hash,
                    log_index=log.log_index,
                    reason=str(e),
                )
        return records, len(logs), skipped

    def process_block(self, block_number: int) -> BlockResult:
        """
        Process one block inside a single ledger transaction.

        Raises ConnectivityError (log/timestamp fetch) or PersistenceError
        (ledger); in both cases nothing from this block is committed.
        """
        records, log_count, skipped = self.decode_logs(block_number)
        result = BlockResult(block_number=block_number, log_count=log_count, skipped=skipped)

        with self._ledger.begin() as tx:
            touched = False
            for record in records:
                if not tx.insert_transfer_if_absent(record):
                    result.duplicates += 1
                    continue
                result.inserted += 1
                is_inflow, is_outflow = self.classify(record)
                amount = int(record.amount)
                if is_inflow:
                    result.inflow_delta += amount
                    touched = True
                if is_outflow:
                    result.outflow_delta += amount
                    touched = True
            totals = tx.read_totals()
            if touched:
                totals = NetflowTotals(
                    inflow=add_decimal(totals.inflow, result.inflow_delta),
                    outflow=add_decimal(totals.outflow, result.outflow_delta),
                )
                tx.write_totals(totals.inflow, totals.outflow)
                result.totals_updated = True
        result.totals = totals

        if result.duplicates:
            logger.info(
                "processor_duplicates_ignored",
                block_number=block_number,
                duplicates=result.duplicates,
            )
        return result
