from __future__ import annotations

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from discounts_service.api.routes.discounts import router as discounts_router
from discounts_service.api.routes.health import router as health_router
from discounts_service.api.routes.outbox import router as outbox_router
from discounts_service.core.config import SERVICE_NAME, get_settings
from discounts_service.core.logging import configure_logging
from discounts_service.db.session import create_all, dispose_engine
from discounts_service.outbox.dispatcher import build_outbox_dispatcher

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    if settings.db_auto_create:
        await create_all()
    dispatcher = app.state.outbox_dispatcher
    if settings.dispatcher_enabled:
        dispatcher.start()
    logger.info("service_started", service=SERVICE_NAME, port=settings.app_port)
    try:
        yield
    finally:
        await dispatcher.stop()
        await dispose_engine()
        logger.info("service_stopped", service=SERVICE_NAME)


async def _log_requests(request: Request, call_next):
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request.headers.get("X-Request-Id") or uuid4().hex,
        method=request.method,
        path=request.url.path,
    )
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        logger.info(
            "http_request_finished",
            status_code=status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )


async def _invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("http_request_invalid", errors=len(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {"code": "E_INVALID_REQUEST", "message": "Invalid request body"}},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("http_request_failed", method=request.method, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"code": "E_INTERNAL", "message": "Internal server error"}},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Discounts Service API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.outbox_dispatcher = build_outbox_dispatcher()
    app.middleware("http")(_log_requests)
    app.add_exception_handler(RequestValidationError, _invalid_body_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(health_router)
    app.include_router(discounts_router)
    app.include_router(outbox_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "discounts_service.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
