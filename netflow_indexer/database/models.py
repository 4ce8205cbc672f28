"""
Domain models for ledger entities.

Transfer records, running netflow totals. No ORM coupling so the backend
stays swappable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from netflow_indexer.utils.amounts import sub_decimal


@dataclass(frozen=True)
class TransferRecord:
    """Single Transfer event, created once and never mutated."""

    tx_hash: str
    log_index: int
    block_number: int
    timestamp: int
    """Unix timestamp (seconds) of the block; 0 if the block was not found."""
    from_address: str
    to_address: str
    token_address: str
    amount: str
    """Raw token base units as a decimal string (no decimals applied)."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "log_index": self.log_index,
            "block_number": self.block_number,
            "timestamp": self.timestamp,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "token_address": self.token_address,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class NetflowTotals:
    """Cumulative inflow/outflow of the watch-list (decimal strings)."""

    inflow: str = "0"
    outflow: str = "0"

    @property
    def net(self) -> str:
        return sub_decimal(self.inflow, self.outflow)
