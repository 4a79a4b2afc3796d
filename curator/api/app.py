"""FastAPI application factory for the learning API."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from curator import __version__
from curator.api.routes import create_routes
from curator.core.config import Settings, settings
from curator.core.exceptions import StoreError
from curator.engines.curator import ContextCurator
from curator.observability.logging import LogEvents, configure_logging, get_logger
from curator.utils.service_factory import create_curator

logger = logging.getLogger(__name__)
event_logger = get_logger(__name__)


def create_app(
    config: Settings | None = None,
    curator: ContextCurator | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Settings (module settings if None)
        curator: Prebuilt curator; when None one is created from settings
            at startup and closed at shutdown

    Returns:
        Configured FastAPI app
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build the curator on startup, register routes, close on shutdown."""
        configure_logging(level=config.log_level)
        owned = curator is None
        active = curator or await create_curator(config)

        app.state.curator = active
        app.include_router(create_routes(active, config))
        event_logger.info(
            LogEvents.SERVER_STARTED,
            host=config.api_host,
            port=config.api_port,
            backend=config.store_backend,
        )

        yield

        if owned:
            await active.close()
        event_logger.info(LogEvents.SERVER_SHUTDOWN)

    app = FastAPI(
        title="Curator",
        description="Adaptive context selection for agent prompts",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        event_logger.error(LogEvents.STORE_ERROR, error=exc.message, path=request.url.path)
        return JSONResponse(
            status_code=503,
            content={"error": exc.code, "detail": exc.message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unhandled exceptions."""
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)},
        )

    return app
