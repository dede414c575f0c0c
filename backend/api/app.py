"""
FastAPI application factory for the QSL tracker API service.

Creates the app with:
- status and dispatch routes
- refresh route (workflow trigger + reconciliation)
- log sink routes
- Middleware stack
- Health check endpoint
- Lifespan management (startup/shutdown)
- Optional background poll scheduler
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI

from shared.config import get_settings
from shared.utils.log_sink import LogConfigStore
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from api.dependencies import get_refresh, init_dependencies
from api.middleware import setup_middleware
from api.routes.logs import router as logs_router
from api.routes.refresh import router as refresh_router
from api.routes.statuses import router as statuses_router
from reconciler.runtime import Runtime
from scheduler.service import PollScheduler

logger = get_logger(__name__)


@asynccontextmanager
async def _noop_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """No-op lifespan for testing; dependencies are initialized by the test."""
    yield


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup (store, fetcher, reconciliation components, optional
    poll scheduler) and shutdown (graceful cleanup, reverse order).
    """
    settings = get_settings()
    log_config = LogConfigStore.from_settings(settings)
    setup_logging("api", settings, log_config)
    start_metrics_server(settings)

    runtime = Runtime(settings)
    await runtime.start()

    init_dependencies(runtime.ledger, runtime.refresh, log_config, settings)

    poll_task: Optional[asyncio.Task[None]] = None
    scheduler: Optional[PollScheduler] = None
    if settings.poll_enabled:
        scheduler = PollScheduler(runtime.refresh, settings)
        poll_task = asyncio.create_task(scheduler.run())

    logger.info(
        "api_service_started",
        host=settings.api_host,
        port=settings.api_port,
        poll_enabled=settings.poll_enabled,
    )

    yield

    # Shutdown
    if scheduler is not None and poll_task is not None:
        scheduler.request_shutdown()
        poll_task.cancel()
        try:
            await poll_task
        except asyncio.CancelledError:
            pass

    await runtime.close()
    logger.info("api_service_stopped")


def create_app(*, use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application. Set use_lifespan=False for testing."""
    app = FastAPI(
        title="QSL Tracker API",
        description="QSL card dispatch and receipt confirmation tracking",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else _noop_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Middleware
    setup_middleware(app)

    # REST routes
    app.include_router(statuses_router)
    app.include_router(refresh_router)
    app.include_router(logs_router)

    # Health check
    @app.get("/health", tags=["system"])
    async def health() -> dict[str, Any]:
        try:
            refreshing = get_refresh().gate.busy
        except RuntimeError:
            refreshing = False
        return {"status": "ok", "service": "api", "refreshing": refreshing}

    return app


# Module-level app instance for uvicorn
app = create_app()
