"""
Environment variable loading for the netflow indexer.

- RPC_URL: chain JSON-RPC HTTP endpoint (default: public Polygon RPC)
- DATABASE_PATH: SQLite ledger file (DATABASE_URL sqlite://... also accepted)
- CONFIG_PATH: YAML file with token_address / watch_addresses / start_from_block
- BIND_ADDR: host:port for the read API
- POLL_INTERVAL_SEC, RPC_TIMEOUT_SEC, HEARTBEAT_INTERVAL_SEC: loop timing
- INDEXER_ENABLED: 0 to serve the API without running ingestion
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_RPC_URL = "https://polygon-rpc.com"
DEFAULT_DATABASE_PATH = "./data/indexer.sqlite"
DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_BIND_ADDR = "0.0.0.0:8080"
DEFAULT_POLL_INTERVAL_SEC = 0.9
DEFAULT_RPC_TIMEOUT_SEC = 15.0
DEFAULT_HEARTBEAT_INTERVAL_SEC = 30.0


def load_indexer_env() -> None:
    """Load .env from project root. Existing env vars are not overridden; safe to call repeatedly."""
    from dotenv import load_dotenv

    load_dotenv(_ENV_PATH)


def _env_str(name: str, default: str) -> str:
    return (os.getenv(name) or "").strip() or default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def get_rpc_url() -> str:
    return _env_str("RPC_URL", DEFAULT_RPC_URL)


def get_database_path() -> Path:
    """
    Resolve the ledger path.
    Order: DATABASE_PATH > DATABASE_URL (sqlite://path) > default.
    """
    path = (os.getenv("DATABASE_PATH") or "").strip()
    if path:
        return Path(path)
    url = (os.getenv("DATABASE_URL") or "").strip()
    if url.startswith("sqlite://"):
        return Path(url[len("sqlite://"):])
    return Path(DEFAULT_DATABASE_PATH)


def get_config_path() -> Path:
    return Path(_env_str("CONFIG_PATH", DEFAULT_CONFIG_PATH))


def get_bind_addr() -> tuple[str, int]:
    """Return (host, port) from BIND_ADDR ("host:port")."""
    raw = _env_str("BIND_ADDR", DEFAULT_BIND_ADDR)
    host, sep, port = raw.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"BIND_ADDR must be host:port, got {raw!r}")
    return host or "0.0.0.0", int(port)


def get_poll_interval_sec() -> float:
    return _env_float("POLL_INTERVAL_SEC", DEFAULT_POLL_INTERVAL_SEC)


def get_rpc_timeout_sec() -> float:
    return _env_float("RPC_TIMEOUT_SEC", DEFAULT_RPC_TIMEOUT_SEC)


def get_heartbeat_interval_sec() -> float:
    return _env_float("HEARTBEAT_INTERVAL_SEC", DEFAULT_HEARTBEAT_INTERVAL_SEC)


def is_indexer_enabled() -> bool:
    """Return False when INDEXER_ENABLED is 0/false/no/off."""
    raw = (os.getenv("INDEXER_ENABLED") or "1").strip().lower()
    return raw not in ("0", "false", "no", "off")
