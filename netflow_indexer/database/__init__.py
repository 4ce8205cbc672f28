"""
Ledger persistence layer: transfer records, netflow totals, block cursor.

SQLite via Ledger and get_ledger(); backend is swappable behind LedgerBackend.
"""

from netflow_indexer.database.database import (
    Ledger,
    LedgerBackend,
    LedgerTransaction,
    SQLiteBackend,
    get_ledger,
)
from netflow_indexer.database.models import NetflowTotals, TransferRecord

__all__ = [
    "Ledger",
    "LedgerBackend",
    "LedgerTransaction",
    "SQLiteBackend",
    "get_ledger",
    "NetflowTotals",
    "TransferRecord",
]
