"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config_server import __version__
from config_server.api.dependencies import environment_service_for
from config_server.api.routers import environment
from config_server.config import get_settings
from config_server.config.logging import configure_logging
from config_server.core.exceptions import (
    ConfigServerError,
    NoSuchLabelError,
    NoSuchRepositoryError,
)

logger = structlog.get_logger(__name__)

STATUS_CODES: dict[type[ConfigServerError], int] = {
    NoSuchLabelError: 404,
    NoSuchRepositoryError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.is_production,
    )

    # Built before serving so clone_on_start repositories are cloned at startup.
    environment_service_for(app)
    logger.info("Environment service ready")

    yield


async def config_server_error_handler(request: Request, exc: ConfigServerError) -> JSONResponse:
    status_code = next(
        (code for kind, code in STATUS_CODES.items() if isinstance(exc, kind)), 500
    )
    logger.warning(
        "Request failed",
        path=request.url.path,
        error=type(exc).__name__,
        status_code=status_code,
        message=exc.message,
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": exc.message, "details": exc.details},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Config Server",
        description="Git-backed externalized configuration",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_exception_handler(ConfigServerError, config_server_error_handler)
    app.include_router(environment.router, tags=["Environment"])

    return app


def run() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "config_server.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        log_config=None,
    )


if __name__ == "__main__":
    run()
