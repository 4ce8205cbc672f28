"""
Tests for settings loading: YAML config validation and environment overrides.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from netflow_indexer.config import env
from netflow_indexer.config.settings import load_settings, parse_config
from netflow_indexer.core.exceptions import ConfigError
from tests.fakes import TOKEN, WATCHED, WATCHED_2

ENV_VARS = (
    "RPC_URL",
    "DATABASE_PATH",
    "DATABASE_URL",
    "CONFIG_PATH",
    "BIND_ADDR",
    "POLL_INTERVAL_SEC",
    "RPC_TIMEOUT_SEC",
    "HEARTBEAT_INTERVAL_SEC",
    "INDEXER_ENABLED",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(env, "load_indexer_env", lambda: None)


def _write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_settings_defaults(tmp_path):
    path = _write_config(
        tmp_path,
        f'token_address: "{TOKEN.upper().replace("0X", "0x")}"\n'
        f'watch_addresses:\n  - "{WATCHED}"\n  - "{WATCHED_2}"\n  - " {WATCHED} "\n',
    )
    settings = load_settings(path)
    assert settings.token_address == TOKEN
    assert settings.watch_addresses == (WATCHED, WATCHED_2)
    assert settings.start_from_block is None
    assert settings.rpc_url == env.DEFAULT_RPC_URL
    assert settings.database_path == Path(env.DEFAULT_DATABASE_PATH)
    assert (settings.bind_host, settings.bind_port) == ("0.0.0.0", 8080)
    assert settings.poll_interval_sec == 0.9
    assert settings.indexer_enabled is True


def test_config_path_from_env(tmp_path, monkeypatch):
    path = _write_config(tmp_path, f'token_address: "{TOKEN}"\nwatch_addresses: ["{WATCHED}"]\nstart_from_block: 500\n')
    monkeypatch.setenv("CONFIG_PATH", str(path))
    assert load_settings().start_from_block == 500


def test_binance_addresses_alias(tmp_path):
    path = _write_config(tmp_path, f'token_address: "{TOKEN}"\nbinance_addresses: ["{WATCHED}"]\n')
    assert load_settings(path).watch_addresses == (WATCHED,)


def test_env_overrides(tmp_path, monkeypatch):
    path = _write_config(tmp_path, f'token_address: "{TOKEN}"\nwatch_addresses: ["{WATCHED}"]\n')
    monkeypatch.setenv("RPC_URL", "http://localhost:8545")
    monkeypatch.setenv("DATABASE_URL", "sqlite://" + str(tmp_path / "x.sqlite"))
    monkeypatch.setenv("BIND_ADDR", "127.0.0.1:9090")
    monkeypatch.setenv("POLL_INTERVAL_SEC", "2.5")
    monkeypatch.setenv("INDEXER_ENABLED", "false")
    settings = load_settings(path)
    assert settings.rpc_url == "http://localhost:8545"
    assert settings.database_path == tmp_path / "x.sqlite"
    assert (settings.bind_host, settings.bind_port) == ("127.0.0.1", 9090)
    assert settings.poll_interval_sec == 2.5
    assert settings.indexer_enabled is False


def test_database_path_wins_over_url(monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", "/tmp/a.sqlite")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/b.sqlite")
    assert env.get_database_path() == Path("/tmp/a.sqlite")


@pytest.mark.parametrize(
    "name,value",
    [("BIND_ADDR", "no-port"), ("BIND_ADDR", "host:abc"), ("POLL_INTERVAL_SEC", "fast")],
)
def test_bad_env_values_raise_config_error(tmp_path, monkeypatch, name, value):
    path = _write_config(tmp_path, f'token_address: "{TOKEN}"\nwatch_addresses: ["{WATCHED}"]\n')
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        load_settings(path)


def test_missing_file_raises_config_error(tmp_path):
    with pytest.raises(ConfigError, match="cannot read"):
        load_settings(tmp_path / "absent.yaml")


def test_invalid_yaml_raises_config_error(tmp_path):
    path = _write_config(tmp_path, "token_address: [unclosed\n")
    with pytest.raises(ConfigError, match="invalid YAML"):
        load_settings(path)


@pytest.mark.parametrize(
    "raw",
    [
        None,
        ["not", "a", "mapping"],
        {"watch_addresses": [WATCHED]},
        {"token_address": TOKEN},
        {"token_address": "0x1234", "watch_addresses": [WATCHED]},
        {"token_address": TOKEN, "watch_addresses": WATCHED},
        {"token_address": TOKEN, "watch_addresses": ["0xnothex"]},
        {"token_address": TOKEN, "watch_addresses": [WATCHED], "start_from_block": -1},
        {"token_address": TOKEN, "watch_addresses": [WATCHED], "start_from_block": "100"},
        {"token_address": TOKEN, "watch_addresses": [WATCHED], "start_from_block": True},
    ],
)
def test_parse_config_rejects_invalid(raw):
    with pytest.raises(ConfigError):
        parse_config(raw)


def test_parse_config_allows_empty_watch_list():
    parsed = parse_config({"token_address": TOKEN, "watch_addresses": []})
    assert parsed["watch_addresses"] == ()
