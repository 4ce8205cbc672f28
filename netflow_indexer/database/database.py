"""
Ledger persistence: transfer records, running netflow totals, and the block cursor.

SQLite for now; all access goes through the abstract LedgerBackend so the
store can be swapped (e.g. PostgreSQL) without touching the ingestion code.

Every mutation happens inside a scoped transaction obtained from begin():
commit on normal exit, rollback on any exception, connection always closed.
sqlite3 errors surface as PersistenceError.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from netflow_indexer.core.exceptions import PersistenceError
from netflow_indexer.database.models import NetflowTotals, TransferRecord
from netflow_indexer.indexer_logging import get_logger
from netflow_indexer.utils.amounts import parse_amount

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# Schema (SQLite). Amounts are TEXT decimal strings to avoid precision loss.
# -----------------------------------------------------------------------------

SCHEMA_TRANSFERS = """
CREATE TABLE IF NOT EXISTS transfers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tx_hash TEXT NOT NULL,
    log_index INTEGER NOT NULL,
    block_number INTEGER NOT NULL,
    timestamp INTEGER NOT NULL,
    from_address TEXT NOT NULL,
    to_address TEXT NOT NULL,
    token_address TEXT NOT NULL,
    amount TEXT NOT NULL,
    UNIQUE(tx_hash, log_index)
);
CREATE INDEX IF NOT EXISTS ix_transfers_from ON transfers(from_address);
CREATE INDEX IF NOT EXISTS ix_transfers_to ON transfers(to_address);
CREATE INDEX IF NOT EXISTS ix_transfers_token ON transfers(token_address);
CREATE INDEX IF NOT EXISTS ix_transfers_block ON transfers(block_number);
"""

SCHEMA_CURSOR = """
CREATE TABLE IF NOT EXISTS cursor_state (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    last_block INTEGER NOT NULL
);
"""

SCHEMA_TOTALS = """
CREATE TABLE IF NOT EXISTS netflow_totals (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    inflow TEXT NOT NULL DEFAULT '0',
    outflow TEXT NOT NULL DEFAULT '0'
);
INSERT OR IGNORE INTO netflow_totals (id, inflow, outflow) VALUES (1, '0', '0');
"""


# -----------------------------------------------------------------------------
# Transaction scope
# -----------------------------------------------------------------------------


class LedgerTransaction(ABC):
    """Operations available inside one ledger transaction."""

    @abstractmethod
    def insert_transfer_if_absent(self, record: TransferRecord) -> bool:
        """Insert the record; return False (no error) if its identity already exists."""
        ...

    @abstractmethod
    def read_totals(self) -> NetflowTotals:
        ...

    @abstractmethod
    def write_totals(self, inflow: str, outflow: str) -> None:
        """Replace the totals row. Totals never decrease."""
        ...

    @abstractmethod
    def read_cursor(self) -> int | None:
        """Return the last committed block, or None if never initialized."""
        ...

    @abstractmethod
    def write_cursor(self, block_number: int) -> None:
        """Persist the cursor. Moving it backwards raises PersistenceError."""
        ...

    @abstractmethod
    def get_transfers(self, *, limit: int, address: str | None) -> list[TransferRecord]:
        ...

    @abstractmethod
    def count_transfers(self) -> int:
        ...


class SQLiteTransaction(LedgerTransaction):
    """LedgerTransaction bound to an open sqlite3 connection inside BEGIN IMMEDIATE."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def insert_transfer_if_absent(self, record: TransferRecord) -> bool:
        cur = self._conn.execute(
            """
            INSERT OR IGNORE INTO transfers
                (tx_hash, log_index, block_number, timestamp, from_address, to_address, token_address, amount)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.tx_hash,
                record.log_index,
                record.block_number,
                record.timestamp,
                record.from_address,
                record.to_address,
                record.token_address,
                record.amount,
            ),
        )
        return cur.rowcount == 1

    def read_totals(self) -> NetflowTotals:
        row = self._conn.execute(
            "SELECT inflow, outflow FROM netflow_totals WHERE id = 1"
        ).fetchone()
        if row is None:
            return NetflowTotals()
        return NetflowTotals(inflow=row["inflow"], outflow=row["outflow"])

    def write_totals(self, inflow: str, outflow: str) -> None:
        new_in = parse_amount(inflow)
        new_out = parse_amount(outflow)
        current = self.read_totals()
        if new_in < parse_amount(current.inflow) or new_out < parse_amount(current.outflow):
            raise PersistenceError(
                f"Totals may not decrease: ({current.inflow}, {current.outflow}) -> ({new_in}, {new_out})"
            )
        self._conn.execute(
            """
            INSERT INTO netflow_totals (id, inflow, outflow) VALUES (1, ?, ?)
            ON CONFLICT(id) DO UPDATE SET inflow = excluded.inflow, outflow = excluded.outflow
            """,
            (str(new_in), str(new_out)),
        )

    def read_cursor(self) -> int | None:
        row = self._conn.execute(
            "SELECT last_block FROM cursor_state WHERE id = 1"
        ).fetchone()
        return None if row is None else int(row["last_block"])

    def write_cursor(self, block_number: int) -> None:
        if block_number < 0:
            raise PersistenceError(f"Invalid cursor value: {block_number}")
        current = self.read_cursor()
        if current is not None and block_number < current:
            raise PersistenceError(
                f"Cursor may not move backwards: {current} -> {block_number}"
            )
        self._conn.execute(
            """
            INSERT INTO cursor_state (id, last_block) VALUES (1, ?)
            ON CONFLICT(id) DO UPDATE SET last_block = excluded.last_block
            """,
            (block_number,),
        )

    def get_transfers(self, *, limit: int, address: str | None) -> list[TransferRecord]:
        sql = """
            SELECT tx_hash, log_index, block_number, timestamp, from_address, to_address, token_address, amount
            FROM transfers
        """
        params: list[Any] = []
        if address is not None:
            sql += " WHERE from_address = ? OR to_address = ?"
            params.extend([address, address])
        sql += " ORDER BY block_number DESC, log_index DESC LIMIT ?"
        params.append(limit)
        rows = self._conn.execute(sql, params).fetchall()
        return [
            TransferRecord(
                tx_hash=row["tx_hash"],
                log_index=row["log_index"],
                block_number=row["block_number"],
                timestamp=row["timestamp"],
                from_address=row["from_address"],
                to_address=row["to_address"],
                token_address=row["token_address"],
                amount=row["amount"],
            )
            for row in rows
        ]

    def count_transfers(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) AS n FROM transfers").fetchone()
        return int(row["n"])


# -----------------------------------------------------------------------------
# Abstract backend: swap implementation for PostgreSQL later.
# -----------------------------------------------------------------------------


class LedgerBackend(ABC):
    """Abstract interface for ledger persistence."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist; seed the totals row."""
        ...

    @abstractmethod
    def begin(self) -> Any:
        """Context manager yielding a LedgerTransaction; commit on success, rollback on error."""
        ...


class SQLiteBackend(LedgerBackend):
    """SQLite implementation; single file, one connection per transaction."""

    def __init__(self, path: str | Path, *, timeout_sec: float = 5.0) -> None:
        self._path = Path(path)
        self._timeout_sec = timeout_sec

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # isolation_level=None: transactions are opened explicitly with BEGIN IMMEDIATE
        conn = sqlite3.connect(
            str(self._path),
            timeout=self._timeout_sec,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = FULL")
        return conn

    def ensure_schema(self) -> None:
        try:
            conn = self._connect()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(f"Cannot open ledger at {self._path}: {e}") from e
        try:
            for stmt in (SCHEMA_TRANSFERS, SCHEMA_CURSOR, SCHEMA_TOTALS):
                conn.executescript(stmt)
        except sqlite3.Error as e:
            raise PersistenceError(f"Schema creation failed: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def begin(self) -> Iterator[SQLiteTransaction]:
        try:
            conn = self._connect()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(f"Cannot open ledger at {self._path}: {e}") from e
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield SQLiteTransaction(conn)
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Ledger transaction failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


# -----------------------------------------------------------------------------
# Ledger facade: single entrypoint; backend is swappable.
# -----------------------------------------------------------------------------


class Ledger:
    """
    Transfer ledger, netflow totals, and block cursor.

    begin() is the transactional boundary used by the block processor; the
    remaining methods are short single-purpose transactions.
    """

    def __init__(self, backend: LedgerBackend) -> None:
        self._backend = backend

    def ensure_schema(self) -> None:
        self._backend.ensure_schema()

    def begin(self) -> Any:
        """Return a transaction context manager (see LedgerBackend.begin)."""
        return self._backend.begin()

    # --- Totals ---

    def get_totals(self) -> NetflowTotals:
        with self.begin() as tx:
            return tx.read_totals()

    # --- Cursor ---

    def get_cursor(self) -> int | None:
        with self.begin() as tx:
            return tx.read_cursor()

    def advance_cursor(self, block_number: int) -> None:
        """Persist the cursor in its own transaction (after the block's data committed)."""
        with self.begin() as tx:
            tx.write_cursor(block_number)

    def initialize_cursor(self, block_number: int) -> int:
        """
        Set the cursor only if none is persisted. Returns the effective cursor.

        An existing cursor always wins so restarts resume instead of rewinding.
        """
        with self.begin() as tx:
            current = tx.read_cursor()
            if current is not None:
                if current != block_number:
                    logger.info(
                        "ledger_cursor_resumed",
                        persisted=current,
                        requested=block_number,
                    )
                return current
            tx.write_cursor(block_number)
        logger.info("ledger_cursor_initialized", last_block=block_number)
        return block_number

    # --- Transfers ---

    def get_transfers(self, *, limit: int = 100, address: str | None = None) -> list[TransferRecord]:
        """Return transfer records newest first, optionally filtered by address (either side)."""
        with self.begin() as tx:
            return tx.get_transfers(limit=limit, address=address)

    def count_transfers(self) -> int:
        with self.begin() as tx:
            return tx.count_transfers()


def get_ledger(path: str | Path | None = None) -> Ledger:
    """
    Return a Ledger over SQLite with the schema ensured.

    path: SQLite file (e.g. "data/indexer.sqlite"). Default: "indexer.sqlite" in cwd.
    """
    if path is None:
        path = Path("indexer.sqlite")
    ledger = Ledger(SQLiteBackend(path))
    ledger.ensure_schema()
    return ledger
