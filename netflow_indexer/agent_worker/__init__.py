"""
Agent worker package: 24/7 background ingestion.

Wires the chain client, ledger, block processor and poll loop, bootstraps the
cursor and cache at startup, and runs the loop on a background thread.
"""

from netflow_indexer.agent_worker.runner import (
    IndexerComponents,
    bootstrap,
    build_components,
    start_indexer_thread,
    stop_indexer_thread,
)

__all__ = [
    "IndexerComponents",
    "bootstrap",
    "build_components",
    "start_indexer_thread",
    "stop_indexer_thread",
]
