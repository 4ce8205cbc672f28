"""
FastAPI server: read-only API over the netflow cache.

GET /netflow returns the latest committed {inflow, outflow, net} as decimal
strings; GET /health is a liveness probe. Handlers only read the cache and
never touch the ledger or the chain.

The module-level `app` runs ingestion from its lifespan (settings from env),
so `uvicorn netflow_indexer.api_server.app:app` is a complete process.
main.py instead bootstraps ingestion itself and serves create_app(cache,
run_indexer=False).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from netflow_indexer import __version__
from netflow_indexer.api_server.cache import NetflowCache
from netflow_indexer.indexer_logging import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------


class NetflowResponse(BaseModel):
    """GET /netflow response: watch-list totals in raw token base units."""

    inflow: str = Field(..., description="Cumulative inflow to watched addresses (decimal string)")
    outflow: str = Field(..., description="Cumulative outflow from watched addresses (decimal string)")
    net: str = Field(..., description="max(inflow - outflow, 0) (decimal string)")
    block_number: int | None = Field(None, description="Last committed block reflected in the totals")


# -----------------------------------------------------------------------------
# Dependency
# -----------------------------------------------------------------------------


def get_cache(request: Request) -> NetflowCache:
    return request.app.state.cache


# -----------------------------------------------------------------------------
# Lifespan: start the ingestion thread (never blocks the API)
# -----------------------------------------------------------------------------


@asynccontextmanager
async def _indexer_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Bootstrap and run ingestion in a background thread; stop it on shutdown."""
    from netflow_indexer.agent_worker.runner import (
        bootstrap,
        build_components,
        start_indexer_thread,
        stop_indexer_thread,
    )
    from netflow_indexer.config.env import is_indexer_enabled
    from netflow_indexer.config.settings import load_settings

    if not is_indexer_enabled():
        logger.info("api_indexer_disabled")
        yield
        return

    settings = load_settings()
    components = build_components(settings, cache=app.state.cache)
    bootstrap(settings, components.chain, components.ledger, components.cache)
    thread, stop_event = start_indexer_thread(components.loop)
    try:
        yield
    finally:
        stop_indexer_thread(thread, stop_event)
        components.chain.close()


@asynccontextmanager
async def _no_lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield


def create_app(cache: NetflowCache | None = None, *, run_indexer: bool = True) -> FastAPI:
    """
    Build the API app around a NetflowCache.

    run_indexer=True starts ingestion from the lifespan (settings from env);
    False serves the given cache only, for callers that run ingestion themselves.
    """
    app = FastAPI(
        title="Netflow Indexer",
        version=__version__,
        lifespan=_indexer_lifespan if run_indexer else _no_lifespan,
    )
    app.state.cache = cache if cache is not None else NetflowCache()

    @app.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "ok"

    @app.get("/netflow", response_model=NetflowResponse)
    def netflow(cache: NetflowCache = Depends(get_cache)) -> NetflowResponse:
        snapshot = cache.read()
        return NetflowResponse(**snapshot.to_dict())

    return app


app = create_app()
