"""
Data models for chain client output.

RawLog mirrors an eth_getLogs result item with hex quantities converted to
ints; topics and data stay as hex strings for the decoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from netflow_indexer.core.exceptions import ConnectivityError


def hex_to_int(value: Any) -> int:
    """Parse a JSON-RPC hex quantity ("0x1a") or plain int."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text.startswith("0x"):
            return int(text, 16) if len(text) > 2 else 0
        return int(text)
    raise ValueError(f"Not a quantity: {value!r}")


@dataclass(frozen=True)
class RawLog:
    """
    Single log entry from eth_getLogs.

    Unit of work handed from the chain client to the block processor.
    """

    address: str
    topics: tuple[str, ...]
    data: str
    block_number: int
    transaction_hash: str
    log_index: int

    @classmethod
    def from_rpc(cls, item: dict[str, Any]) -> "RawLog":
        """Build from one eth_getLogs result item; raise ConnectivityError if malformed."""
        try:
            return cls(
                address=str(item["address"]),
                topics=tuple(str(t) for t in item.get("topics") or ()),
                data=str(item.get("data") or "0x"),
                block_number=hex_to_int(item["blockNumber"]),
                transaction_hash=str(item["transactionHash"]),
                log_index=hex_to_int(item.get("logIndex", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConnectivityError(f"Malformed log in RPC response: {e}") from e
