"""
Application settings: YAML config file plus environment.

config.yaml (path from CONFIG_PATH):

    token_address: "0x..."            # ERC-20 contract to index
    watch_addresses: ["0x...", ...]   # alias: binance_addresses
    start_from_block: 12345678        # optional; default is the chain head

Everything else (RPC URL, ledger path, bind address, timings) comes from
the environment, see config.env. Loaded once at startup; invalid input
raises ConfigError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from netflow_indexer.config import env
from netflow_indexer.core.exceptions import ConfigError

ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


@dataclass(frozen=True)
class Settings:
    """Validated settings for one indexer instance (one token, one chain)."""

    token_address: str
    watch_addresses: tuple[str, ...]
    start_from_block: int | None = None
    rpc_url: str = env.DEFAULT_RPC_URL
    database_path: Path = Path(env.DEFAULT_DATABASE_PATH)
    bind_host: str = "0.0.0.0"
    bind_port: int = 8080
    poll_interval_sec: float = env.DEFAULT_POLL_INTERVAL_SEC
    rpc_timeout_sec: float = env.DEFAULT_RPC_TIMEOUT_SEC
    heartbeat_interval_sec: float = env.DEFAULT_HEARTBEAT_INTERVAL_SEC
    indexer_enabled: bool = True


def _normalize_address(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{field_name} must be a string, got {value!r}")
    addr = value.strip().lower()
    if not ADDRESS_RE.match(addr):
        raise ConfigError(f"{field_name} is not a 20-byte hex address: {value!r}")
    return addr


def parse_config(raw: Any) -> dict[str, Any]:
    """Validate the YAML document; return normalized token/watch-list/start block."""
    if not isinstance(raw, dict):
        raise ConfigError("config must be a mapping")
    if "token_address" not in raw:
        raise ConfigError("config is missing token_address")
    token = _normalize_address(raw["token_address"], "token_address")

    watch_raw = raw.get("watch_addresses")
    if watch_raw is None:
        watch_raw = raw.get("binance_addresses")
    if watch_raw is None:
        raise ConfigError("config is missing watch_addresses")
    if not isinstance(watch_raw, list):
        raise ConfigError("watch_addresses must be a list")
    watch: list[str] = []
    for i, item in enumerate(watch_raw):
        addr = _normalize_address(item, f"watch_addresses[{i}]")
        if addr not in watch:
            watch.append(addr)

    start = raw.get("start_from_block")
    if start is not None:
        if isinstance(start, bool) or not isinstance(start, int) or start < 0:
            raise ConfigError(f"start_from_block must be a non-negative integer, got {start!r}")
    return {
        "token_address": token,
        "watch_addresses": tuple(watch),
        "start_from_block": start,
    }


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load .env, read the YAML config, and return validated Settings."""
    env.load_indexer_env()
    path = Path(config_path) if config_path is not None else env.get_config_path()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    parsed = parse_config(raw)
    try:
        host, port = env.get_bind_addr()
        return Settings(
            token_address=parsed["token_address"],
            watch_addresses=parsed["watch_addresses"],
            start_from_block=parsed["start_from_block"],
            rpc_url=env.get_rpc_url(),
            database_path=env.get_database_path(),
            bind_host=host,
            bind_port=port,
            poll_interval_sec=env.get_poll_interval_sec(),
            rpc_timeout_sec=env.get_rpc_timeout_sec(),
            heartbeat_interval_sec=env.get_heartbeat_interval_sec(),
            indexer_enabled=env.is_indexer_enabled(),
        )
    except ValueError as e:
        raise ConfigError(str(e)) from e


def get_settings() -> Settings:
    """Return the current application settings (CONFIG_PATH + environment)."""
    return load_settings()
