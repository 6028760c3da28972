"""FastAPI application factory with lifespan events."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from cmdbwalk.api.dependencies import set_servicenow
from cmdbwalk.api.router import api_router
from cmdbwalk.config import get_settings
from cmdbwalk.servicenow.connection import ServiceNowClient
from cmdbwalk.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the ServiceNow client on startup and close it on shutdown."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT, instance=settings.SN_INSTANCE)

    servicenow = ServiceNowClient(settings)
    await servicenow.connect()
    set_servicenow(servicenow, settings)

    logger.info("app_started", instance=settings.SN_INSTANCE)
    yield

    await servicenow.close()
    logger.info("app_stopped")


def create_app() -> FastAPI:
    application = FastAPI(
        title="cmdbwalk",
        description="CMDB relationship traversal for impact analysis and dependency mapping",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.include_router(api_router)

    @application.middleware("http")
    async def request_id_middleware(request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "type": type(exc).__name__},
        )

    return application


app = create_app()
