"""
FastAPI application entry point for the Bebek AI backend.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request

from backend.config import Settings, get_settings
from backend.errors import setup_exception_handlers
from backend.routes import router

logger = logging.getLogger("backend.requests")


def route_area(path: str, api_prefix: str) -> str:
    """First path segment below the API prefix, e.g. `styles` or `chat`."""
    if api_prefix and path.startswith(api_prefix):
        path = path[len(api_prefix):]
    segment = path.strip("/").split("/", 1)[0]
    return segment or "root"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)
    app = FastAPI(title="Bebek AI Backend (FastAPI)", version="0.1.0")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        area = route_area(request.url.path, settings.api_prefix)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "[%s] %s %s failed after %.0fms",
                area,
                request.method,
                request.url.path,
                (time.perf_counter() - started) * 1000,
            )
            raise
        logger.info(
            "[%s] %s %s -> %d (%.0fms)",
            area,
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    setup_exception_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
