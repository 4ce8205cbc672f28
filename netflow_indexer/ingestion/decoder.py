"""
ERC-20 Transfer log decoder: raw logs to TransferRecord.

Transfer(address indexed from, address indexed to, uint256 value):
topics = [signature, from, to], data = value (big-endian uint256).
Purely structural; classification against the watch-list happens in the
block processor. Anything that does not fit the shape raises
MalformedEventError and is skipped by the caller.
"""

from __future__ import annotations

from netflow_indexer.chain.models import RawLog
from netflow_indexer.core.exceptions import MalformedEventError
from netflow_indexer.database.models import TransferRecord

# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

TRANSFER_TOPIC_COUNT = 3
TOPIC_SIZE_BYTES = 32
ADDRESS_SIZE_BYTES = 20


def normalize_address(address: str) -> str:
    """Lower-case and trim an address for equality checks."""
    return (address or "").strip().lower()


def _strip_hex(value: str) -> str:
    text = (value or "").strip()
    if text[:2] in ("0x", "0X"):
        return text[2:]
    return text


def _hex_bytes(value: str, what: str) -> bytes:
    try:
        return bytes.fromhex(_strip_hex(value))
    except ValueError as e:
        raise MalformedEventError(f"{what} is not valid hex: {value!r}") from e


def topic_to_address(topic: str) -> str:
    """Return the low-order 20 bytes of a 32-byte topic as a lower-case 0x address."""
    raw = _hex_bytes(topic, "topic")
    if len(raw) != TOPIC_SIZE_BYTES:
        raise MalformedEventError(f"topic must be {TOPIC_SIZE_BYTES} bytes, got {len(raw)}")
    return "0x" + raw[-ADDRESS_SIZE_BYTES:].hex()


def decode_amount(data: str) -> int:
    """Decode the data payload as a big-endian unsigned integer (empty payload -> 0)."""
    raw = _hex_bytes(data, "data")
    return int.from_bytes(raw, "big") if raw else 0


def decode_transfer(log: RawLog, timestamp: int) -> TransferRecord:
    """
    Decode one Transfer log into a TransferRecord.

    Raises MalformedEventError if the log has fewer than three topics or a
    topic/data field cannot be parsed.
    """
    if len(log.topics) < TRANSFER_TOPIC_COUNT:
        raise MalformedEventError(
            f"Transfer log needs {TRANSFER_TOPIC_COUNT} topics, got {len(log.topics)}"
        )
    return TransferRecord(
        tx_hash=log.transaction_hash.strip().lower(),
        log_index=log.log_index,
        block_number=log.block_number,
        timestamp=timestamp,
        from_address=topic_to_address(log.topics[1]),
        to_address=topic_to_address(log.topics[2]),
        token_address=normalize_address(log.address),
        amount=str(decode_amount(log.data)),
    )
