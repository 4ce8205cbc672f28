"""
Main entrypoint: ingestion loop in a background thread + FastAPI server in main thread.

Startup is fail-fast: invalid config, an unreachable chain node, or an
unusable ledger exits with status 1 before the API starts. After that the
poll loop runs in a daemon thread and the API stays responsive; on
SIGINT/SIGTERM uvicorn shuts down and the loop is stopped.

Env: RPC_URL, DATABASE_PATH, CONFIG_PATH, BIND_ADDR, POLL_INTERVAL_SEC, LOG_LEVEL, etc.

API + ingestion via lifespan instead: uvicorn netflow_indexer.api_server.app:app
"""

import os
import sys

# Configure structured JSON logging before other imports that may log
from netflow_indexer.indexer_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Load settings, bootstrap ingestion, start the poll thread, then serve the API."""
    from netflow_indexer.agent_worker.runner import (
        bootstrap,
        build_components,
        start_indexer_thread,
        stop_indexer_thread,
    )
    from netflow_indexer.api_server.server import create_app
    from netflow_indexer.config.settings import load_settings
    from netflow_indexer.core.exceptions import (
        ConfigError,
        ConnectivityError,
        PersistenceError,
    )

    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error("startup_config_invalid", error=str(e))
        sys.exit(1)

    try:
        components = build_components(settings)
        bootstrap(settings, components.chain, components.ledger, components.cache)
    except ConnectivityError as e:
        logger.error("startup_chain_unreachable", rpc_url=settings.rpc_url, error=str(e))
        sys.exit(1)
    except PersistenceError as e:
        logger.error("startup_ledger_failed", database_path=str(settings.database_path), error=str(e))
        sys.exit(1)

    thread, stop_event = start_indexer_thread(components.loop)
    app = create_app(components.cache, run_indexer=False)

    import uvicorn

    logger.info("main_server_starting", host=settings.bind_host, port=settings.bind_port)
    try:
        uvicorn.run(
            app,
            host=settings.bind_host,
            port=settings.bind_port,
            log_level=os.getenv("LOG_LEVEL", "info").lower(),
        )
    finally:
        stop_indexer_thread(thread, stop_event)
        components.chain.close()


if __name__ == "__main__":
    main()
