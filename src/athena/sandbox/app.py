"""Sandbox supervisor entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from athena.api.errors import install_error_handlers
from athena.config import get_settings
from athena.logging_config import get_logger, setup_logging
from athena.sandbox.deps import get_maintenance_scheduler
from athena.sandbox.routes import router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    setup_logging(f"{settings.service_name}-sandbox", settings.log_format, settings.log_level)
    scheduler = get_maintenance_scheduler()
    if settings.maintenance_enabled:
        await scheduler.start()
    logger.info("sandbox_started", projects_root=str(settings.projects_root))
    try:
        yield
    finally:
        await scheduler.stop()


def create_app() -> FastAPI:
    app = FastAPI(title="Athena Sandbox Supervisor", version="0.1.0", lifespan=lifespan)
    install_error_handlers(app)
    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "athena.sandbox.app:app",
        host=settings.sandbox_host,
        port=settings.sandbox_port,
        reload=False,
    )
