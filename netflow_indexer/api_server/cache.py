"""
In-memory netflow snapshot shared between the ingestion thread and the API.

The ingestion thread is the only writer; request handlers read. Snapshots are
immutable, so publish() only swaps a reference under the lock and readers
never observe a half-written value. Only the latest snapshot is kept.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from netflow_indexer.database.models import NetflowTotals
from netflow_indexer.utils.amounts import sub_decimal


@dataclass(frozen=True)
class NetflowSnapshot:
    """Read-optimized copy of the committed totals plus derived net."""

    inflow: str = "0"
    outflow: str = "0"
    net: str = "0"
    block_number: int | None = None
    """Cursor value when the snapshot was published; None before the first block."""

    @classmethod
    def from_totals(cls, totals: NetflowTotals, block_number: int | None) -> "NetflowSnapshot":
        return cls(
            inflow=totals.inflow,
            outflow=totals.outflow,
            net=sub_decimal(totals.inflow, totals.outflow),
            block_number=block_number,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "inflow": self.inflow,
            "outflow": self.outflow,
            "net": self.net,
            "block_number": self.block_number,
        }


class NetflowCache:
    """Single shared NetflowSnapshot; one writer, many readers."""

    def __init__(self, initial: NetflowSnapshot | None = None) -> None:
        self._snapshot = initial or NetflowSnapshot()
        self._lock = threading.Lock()

    def publish(self, snapshot: NetflowSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot

    def read(self) -> NetflowSnapshot:
        with self._lock:
            return self._snapshot
