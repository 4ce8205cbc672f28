"""
Core utilities: shared exceptions and cross-cutting concerns.

Used across the chain client, ingestion pipeline, ledger, and API server.
"""

from netflow_indexer.core.exceptions import (
    ConfigError,
    ConnectivityError,
    IndexerError,
    MalformedEventError,
    PersistenceError,
)

__all__ = [
    "ConfigError",
    "ConnectivityError",
    "IndexerError",
    "MalformedEventError",
    "PersistenceError",
]
