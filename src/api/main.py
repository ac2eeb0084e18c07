"""FastAPI application factory and lifespan management."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from src.api.dependencies import get_settings, init_services, shutdown_services
from src.api.middleware.error_handler import (
    error_handler_middleware,
    validation_exception_handler,
)
from src.api.middleware.logging import LoggingMiddleware
from src.api.openapi.routes import assets, carousel, health, products, proxy
from src.commons.settings.models import Settings
from src.commons.telemetry import configure_logging
from src.commons.telemetry.logger import JsonFormatter, TextFormatter


def _log_level(settings: Settings) -> str:
    return (settings.telemetry.log_level or settings.app.log_level).upper()


def _setup_logging() -> None:
    """Configure logging for the application.

    Runs at import time so our formatters are in place before uvicorn starts.
    """
    settings = get_settings()
    level = _log_level(settings)

    configure_logging(
        level=level,
        format_type=settings.telemetry.log_format,
        logger_name="src",
    )
    logging.getLogger().setLevel(getattr(logging, level))


def _configure_uvicorn_logging() -> None:
    """Give uvicorn's loggers our format.

    Called during lifespan, once uvicorn has installed its handlers.
    """
    settings = get_settings()
    level = getattr(logging, _log_level(settings))
    formatter: logging.Formatter = (
        JsonFormatter() if settings.telemetry.log_format == "json" else TextFormatter()
    )

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        if not logger.handlers:
            logger.addHandler(logging.StreamHandler(sys.stdout))
            logger.propagate = False
        for handler in logger.handlers:
            handler.setFormatter(formatter)
            handler.setLevel(level)


_setup_logging()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Connect infrastructure on startup and close it on shutdown."""
    _configure_uvicorn_logging()

    await init_services(get_settings())

    yield

    await shutdown_services()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        description=(
            "Catalog asset server - image upload, delivery and proxying for "
            "products and the storefront carousel"
        ),
        docs_url="/docs" if settings.server.docs_enabled else None,
        redoc_url="/redoc" if settings.server.docs_enabled else None,
        openapi_url="/openapi.json" if settings.server.docs_enabled else None,
        lifespan=lifespan,
    )

    _configure_middleware(app, settings)
    _register_routes(app, settings)

    return app


def _configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure application middleware.

    Middleware added last runs first: CORS wraps the error handler, which
    wraps request logging, so error bodies carry CORS headers too.
    """
    app.add_middleware(LoggingMiddleware)

    app.middleware("http")(error_handler_middleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials="*" not in settings.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)


def _register_routes(app: FastAPI, settings: Settings) -> None:
    """Register API routes."""
    prefix = settings.server.api_prefix.rstrip("/")

    # Banner and health checks live outside the API prefix
    app.include_router(health.router, tags=["Health"])

    app.include_router(assets.router, prefix=prefix, tags=["Assets"])
    app.include_router(proxy.router, prefix=prefix, tags=["Proxy"])
    app.include_router(carousel.router, prefix=f"{prefix}/carousel", tags=["Carousel"])
    app.include_router(products.router, prefix=f"{prefix}/products", tags=["Products"])

    static_dir = Path(settings.server.static_dir)
    if static_dir.is_dir():
        app.mount(
            settings.server.static_route,
            StaticFiles(directory=static_dir),
            name="static",
        )


# Create default app instance
app = create_app()
