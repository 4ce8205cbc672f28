"""
Application-level exceptions.

- ConnectivityError: chain node unreachable, timed out, or malformed response.
  Fatal at startup, transient at runtime (block retried next iteration).
- PersistenceError: ledger transaction failed; the block's writes are rolled back.
- MalformedEventError: a log cannot be decoded as a Transfer; the log is skipped.
- ConfigError: missing or invalid configuration; fatal at startup.
"""


class IndexerError(Exception):
    """Base class for all netflow indexer errors."""


class ConnectivityError(IndexerError):
    """Remote chain node unreachable or returned a malformed response."""


class PersistenceError(IndexerError):
    """Storage transaction failure; no partial writes survive."""


class MalformedEventError(IndexerError):
    """Raw log does not have the shape of a Transfer event."""


class ConfigError(IndexerError):
    """Configuration missing or invalid."""
