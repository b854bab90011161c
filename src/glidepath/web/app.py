"""FastAPI application factory for the glidepath API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from glidepath import __version__
from glidepath.config import Settings
from glidepath.engine import InvalidInputError
from glidepath.web.schemas import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize and cleanup resources."""
    settings = app.state.settings
    logger.info("Starting glidepath API...")

    from glidepath.web.cache import CacheService

    app.state.cache = await CacheService.create(settings.cache_ttl, settings.cache_maxsize)

    logger.info("glidepath API ready")
    yield

    await app.state.cache.clear_prefix("")
    logger.info("glidepath API shutdown complete")


async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    body = ErrorResponse(
        error={"code": "invalid_input", "message": str(exc)},
    )
    return JSONResponse(status_code=422, content=body.model_dump())


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="glidepath API",
        description="Monte Carlo projection of contribution + rebalancing portfolio strategies",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Accept"],
    )

    app.add_exception_handler(InvalidInputError, invalid_input_handler)

    _register_routers(app)

    return app


def _register_routers(app: FastAPI):
    """Register all API routers."""
    from glidepath.web.routers.simulation import router as simulation_router
    from glidepath.web.routers.system import router as system_router

    app.include_router(simulation_router, prefix="/api/v1")
    app.include_router(system_router, prefix="/api/v1")
