"""
Pytest fixtures for netflow indexer tests. Uses a temporary SQLite ledger
and an in-memory chain client; no network access.
"""

from __future__ import annotations

import pytest

from netflow_indexer.api_server.cache import NetflowCache
from netflow_indexer.database import get_ledger
from netflow_indexer.ingestion.decoder import TRANSFER_TOPIC
from netflow_indexer.ingestion.poll_loop import PollLoop
from netflow_indexer.ingestion.processor import BlockProcessor
from tests.fakes import TOKEN, WATCHED, WATCHED_2, FakeChainClient


@pytest.fixture
def ledger(tmp_path):
    """Fresh ledger in a temp directory (schema ensured)."""
    return get_ledger(tmp_path / "ledger.sqlite")


@pytest.fixture
def chain():
    return FakeChainClient()


@pytest.fixture
def cache():
    return NetflowCache()


@pytest.fixture
def processor(chain, ledger):
    """Processor for TOKEN watching WATCHED and WATCHED_2."""
    return BlockProcessor(
        chain,
        ledger,
        token_address=TOKEN,
        watch_addresses=[WATCHED, f"  {WATCHED_2.upper().replace('0X', '0x')}  "],
        transfer_topic=TRANSFER_TOPIC,
    )


@pytest.fixture
def poll_loop(chain, ledger, processor, cache):
    return PollLoop(chain, ledger, processor, cache, poll_interval_sec=0)
