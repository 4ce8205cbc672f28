"""
Indexer runner: component wiring, startup bootstrap, background thread.

- build_components(): chain client, ledger, block processor, cache, poll loop from Settings.
- bootstrap(): probe the chain (fatal if unreachable), initialize the cursor once,
  preload the cache from persisted totals.
- start_indexer_thread() / stop_indexer_thread(): run PollLoop.run_forever in a
  daemon thread that stops on a threading.Event; never blocks the API.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from netflow_indexer.api_server.cache import NetflowCache, NetflowSnapshot
from netflow_indexer.chain.client import ChainClient, JsonRpcChainClient
from netflow_indexer.config.settings import Settings
from netflow_indexer.database.database import Ledger, get_ledger
from netflow_indexer.indexer_logging import get_logger
from netflow_indexer.ingestion.decoder import TRANSFER_TOPIC
from netflow_indexer.ingestion.poll_loop import PollLoop
from netflow_indexer.ingestion.processor import BlockProcessor

logger = get_logger(__name__)

SHUTDOWN_JOIN_TIMEOUT_SEC = 15.0
THREAD_NAME = "netflow-indexer"


@dataclass
class IndexerComponents:
    """Everything the ingestion thread owns, plus the cache it shares with the API."""

    chain: ChainClient
    ledger: Ledger
    processor: BlockProcessor
    cache: NetflowCache
    loop: PollLoop


def build_components(
    settings: Settings,
    *,
    chain: ChainClient | None = None,
    ledger: Ledger | None = None,
    cache: NetflowCache | None = None,
) -> IndexerComponents:
    """Wire components from settings; chain/ledger/cache may be injected (tests)."""
    if chain is None:
        chain = JsonRpcChainClient(settings.rpc_url, timeout_sec=settings.rpc_timeout_sec)
    if ledger is None:
        ledger = get_ledger(settings.database_path)
    if cache is None:
        cache = NetflowCache()
    processor = BlockProcessor(
        chain,
        ledger,
        token_address=settings.token_address,
        watch_addresses=settings.watch_addresses,
        transfer_topic=TRANSFER_TOPIC,
    )
    loop = PollLoop(
        chain,
        ledger,
        processor,
        cache,
        poll_interval_sec=settings.poll_interval_sec,
        heartbeat_interval_sec=settings.heartbeat_interval_sec,
    )
    return IndexerComponents(chain=chain, ledger=ledger, processor=processor, cache=cache, loop=loop)


def bootstrap(
    settings: Settings,
    chain: ChainClient,
    ledger: Ledger,
    cache: NetflowCache,
) -> int:
    """
    Prepare ingestion state. Returns the effective cursor.

    The chain head is read first so an unreachable node fails startup
    (ConnectivityError propagates). The cursor is set only if none is
    persisted: start_from_block when configured, else the current head.
    """
    head = chain.head_height()
    persisted = ledger.get_cursor()
    if persisted is None:
        start = settings.start_from_block if settings.start_from_block is not None else head
        cursor = ledger.initialize_cursor(start)
    else:
        cursor = persisted
        logger.info("bootstrap_cursor_resumed", last_block=cursor)
    totals = ledger.get_totals()
    cache.publish(NetflowSnapshot.from_totals(totals, cursor))
    logger.info(
        "bootstrap_complete",
        chain_head=head,
        last_block=cursor,
        blocks_behind=max(head - cursor, 0),
        inflow=totals.inflow,
        outflow=totals.outflow,
        token_address=settings.token_address,
        watch_count=len(settings.watch_addresses),
    )
    return cursor


def start_indexer_thread(loop: PollLoop) -> tuple[threading.Thread, threading.Event]:
    """Start loop.run_forever in a daemon thread; set the returned event to stop it."""
    stop_event = threading.Event()
    thread = threading.Thread(
        target=loop.run_forever,
        args=(stop_event,),
        name=THREAD_NAME,
        daemon=True,
    )
    thread.start()
    logger.info("indexer_thread_started", thread=THREAD_NAME)
    return thread, stop_event


def stop_indexer_thread(
    thread: threading.Thread,
    stop_event: threading.Event,
    timeout_sec: float = SHUTDOWN_JOIN_TIMEOUT_SEC,
) -> None:
    stop_event.set()
    thread.join(timeout=timeout_sec)
    if thread.is_alive():
        logger.warning("indexer_thread_join_timeout", timeout_sec=timeout_sec)
    else:
        logger.info("indexer_thread_stopped")
