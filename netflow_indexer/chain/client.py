"""
EVM chain client: head height, filtered logs, block timestamps.

ChainClient is the abstract contract the ingestion pipeline depends on;
JsonRpcChainClient implements it over Ethereum JSON-RPC (HTTP) with httpx.
Every transport failure, timeout, HTTP error, RPC error member, or
unparseable response is raised as ConnectivityError so the caller owns the
retry policy (fatal at startup, retried next iteration at runtime).
"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from typing import Any

import httpx

from netflow_indexer.chain.models import RawLog, hex_to_int
from netflow_indexer.core.exceptions import ConnectivityError
from netflow_indexer.indexer_logging import get_logger

logger = get_logger(__name__)

DEFAULT_RPC_TIMEOUT_SEC = 15.0


class ChainClient(ABC):
    """Abstract view of the remote node used by the poll loop and block processor."""

    @abstractmethod
    def head_height(self) -> int:
        """Return the current chain head block number. Raises ConnectivityError."""
        ...

    @abstractmethod
    def logs_in_range(
        self,
        address: str,
        topic: str,
        from_block: int,
        to_block: int,
    ) -> list[RawLog]:
        """Return logs emitted by address with topic0 == topic in [from_block, to_block]."""
        ...

    @abstractmethod
    def block_timestamp(self, block_number: int) -> int:
        """Return the block's unix timestamp, or 0 if the block is not found."""
        ...

    def close(self) -> None:
        """Release transport resources; no-op by default."""


class JsonRpcChainClient(ChainClient):
    """
    ChainClient over HTTP JSON-RPC.

    One httpx.Client is reused for all calls with a bounded timeout, so a
    stalled node surfaces as ConnectivityError instead of hanging ingestion.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if timeout_sec <= 0:
            raise ValueError("timeout_sec must be positive")
        self._rpc_url = rpc_url.strip()
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_sec),
            transport=transport,
        )
        self._ids = itertools.count(1)

    def __enter__(self) -> "JsonRpcChainClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _call(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call; raise ConnectivityError on any failure."""
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            resp = self._client.post(self._rpc_url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            raise ConnectivityError(f"{method} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ConnectivityError(f"{method} transport error: {e}") from e
        except ValueError as e:
            raise ConnectivityError(f"{method} returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConnectivityError(f"{method} returned unexpected payload")
        err = data.get("error")
        if err:
            message = err.get("message", err) if isinstance(err, dict) else err
            code = err.get("code") if isinstance(err, dict) else None
            raise ConnectivityError(f"{method} RPC error: {message} (code={code})")
        if "result" not in data:
            raise ConnectivityError(f"{method} returned no result")
        return data["result"]

    def head_height(self) -> int:
        result = self._call("eth_blockNumber", [])
        try:
            return hex_to_int(result)
        except ValueError as e:
            raise ConnectivityError(f"eth_blockNumber returned {result!r}") from e

    def logs_in_range(
        self,
        address: str,
        topic: str,
        from_block: int,
        to_block: int,
    ) -> list[RawLog]:
        if from_block > to_block:
            raise ValueError("from_block must be <= to_block")
        flt = {
            "address": address,
            "topics": [topic],
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
        }
        result = self._call("eth_getLogs", [flt])
        if result is None:
            return []
        if not isinstance(result, list):
            raise ConnectivityError("eth_getLogs returned a non-list result")
        logs = [RawLog.from_rpc(item) for item in result if isinstance(item, dict)]
        logger.debug(
            "chain_logs_fetched",
            from_block=from_block,
            to_block=to_block,
            log_count=len(logs),
        )
        return logs

    def block_timestamp(self, block_number: int) -> int:
        block = self._call("eth_getBlockByNumber", [hex(block_number), False])
        if not block:
            logger.debug("chain_block_not_found", block_number=block_number)
            return 0
        try:
            return hex_to_int(block.get("timestamp", 0))
        except (AttributeError, ValueError) as e:
            raise ConnectivityError(f"eth_getBlockByNumber returned malformed block: {e}") from e
