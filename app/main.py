"""FastAPI application factory with lifespan context manager."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import settings
from app.dependencies import init_production_deps
from app.logging_config import configure_logging
from app.routers import health, webhooks


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: configure logging and the shared HTTP client."""
    configure_logging(json_logs=not settings.debug, log_level=settings.log_level)
    async with httpx.AsyncClient(timeout=settings.delivery_timeout_seconds) as client:
        init_production_deps(client, settings)
        structlog.get_logger().info(
            "startup",
            delivery=settings.delivery_mode,
            events=sorted(settings.allowed_events),
            port=settings.port,
        )
        yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 response for any unhandled exception."""
    logger = structlog.get_logger()
    logger.exception("unhandled_exception", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(health.router)
app.include_router(webhooks.router)
