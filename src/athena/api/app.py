"""Platform API entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from athena.api.errors import install_error_handlers
from athena.api.routes.change_requests import router as change_requests_router
from athena.api.routes.projects import router as projects_router
from athena.config import get_settings
from athena.logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    setup_logging(settings.service_name, settings.log_format, settings.log_level)
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Athena API", version="0.1.0", lifespan=lifespan)
    install_error_handlers(app)
    app.include_router(projects_router)
    app.include_router(change_requests_router)

    @app.get("/api/v1/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    uvicorn.run("athena.api.app:app", host="0.0.0.0", port=8000, reload=False)
