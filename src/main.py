"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config.settings import settings
from src.container import AppContainer, build_container
from src.ic_account.api.router import router as account_router
from src.ic_common.errors import AppError, ValidationError
from src.ic_common.response import error_response
from src.ic_gateway.middleware.request_log import RequestLogMiddleware
from src.ic_generation.api.router import router as generation_router

logger = logging.getLogger(__name__)


def create_app(container: AppContainer | None = None) -> FastAPI:
    """Build the app; pass ``container`` to skip Settings-driven wiring."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Startup: build adapters, start cache sweep. Shutdown: stop and dispose."""
        active = container or await build_container(settings)
        app.state.container = active
        await active.startup()
        yield
        await active.shutdown()

    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.add_middleware(RequestLogMiddleware)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error("Request failed: code=%d message=%s", exc.code, exc.message)
        resp = error_response(exc.code, exc.message, getattr(request.state, "request_id", None))
        return JSONResponse(
            status_code=exc.http_status,
            content=resp.model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        err = ValidationError(str(first.get("msg", "malformed request")))
        resp = error_response(err.code, err.message, getattr(request.state, "request_id", None))
        return JSONResponse(status_code=err.http_status, content=resp.model_dump())

    app.include_router(account_router, prefix="/api/v1")
    app.include_router(generation_router, prefix="/api/v1")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": "0.1.0"}

    return app


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()
