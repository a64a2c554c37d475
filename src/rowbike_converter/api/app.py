"""FastAPI application serving the remote calibration endpoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import get_settings
from .exception_handlers import register_exception_handlers
from .routes import calibrations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    logger.info(f"Starting Row/Bike Converter API v{__version__}")
    if settings.storage_backend == "supabase":
        logger.info(f"Storage: supabase ({settings.supabase_url})")
    else:
        logger.info(f"Storage: sqlite ({settings.database_path})")
    yield
    logger.info("Shutting down Row/Bike Converter API")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Row/Bike Converter API",
        description="Calibration storage for RowErg/BikeErg workout conversion",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(calibrations.router, prefix="/api/calibrations", tags=["calibrations"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Row/Bike Converter API",
            "version": __version__,
            "status": "healthy",
        }

    return app


app = create_app()
