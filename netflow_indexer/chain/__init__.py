"""
EVM chain access package.

Wraps the remote node behind ChainClient (head height, filtered logs, block
timestamps) so the ingestion pipeline never talks JSON-RPC directly.
"""

from netflow_indexer.chain.client import ChainClient, JsonRpcChainClient
from netflow_indexer.chain.models import RawLog

__all__ = ["ChainClient", "JsonRpcChainClient", "RawLog"]
