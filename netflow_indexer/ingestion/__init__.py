"""
Ingestion pipeline package.

Polls the chain head, decodes each new block's Transfer logs, persists them
with the watch-list totals in one ledger transaction, advances the cursor,
and publishes the committed totals to the read cache.
"""

from netflow_indexer.ingestion.decoder import TRANSFER_TOPIC, decode_transfer
from netflow_indexer.ingestion.poll_loop import LoopState, LoopStats, PollLoop
from netflow_indexer.ingestion.processor import BlockProcessor, BlockResult

__all__ = [
    "TRANSFER_TOPIC",
    "decode_transfer",
    "BlockProcessor",
    "BlockResult",
    "LoopState",
    "LoopStats",
    "PollLoop",
]
