"""
Race Planner API

FastAPI application for GPX ingestion into the race catalog and import of
catalog races into user plans.
"""

from contextlib import asynccontextmanager
import logging
import sys
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from raceplanner import __version__
from raceplanner.config import Settings, settings as default_settings
from raceplanner.db.session import create_engine_for, init_models
from raceplanner.api.errors import register_error_handlers
from raceplanner.api.rate_limit import RateLimiter
from raceplanner.api.v1.router import api_router
from raceplanner.stores import build_blob_store, build_record_store


# === Logging Setup ===
logging.basicConfig(
    level=getattr(logging, default_settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)


# === Lifespan ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    settings: Settings = app.state.settings

    # Startup
    logger.info("Starting Race Planner API...")
    app.state.http_client = httpx.AsyncClient(timeout=settings.http_timeout_s)

    engine = None
    if settings.record_backend == "sql":
        engine = create_engine_for(settings.database_url)
        await init_models(engine)
        logger.info("Database initialized")

    app.state.blob_store = build_blob_store(settings, app.state.http_client)
    app.state.record_store = build_record_store(settings, app.state.http_client, engine)

    yield

    # Shutdown
    await app.state.http_client.aclose()
    if engine is not None:
        await engine.dispose()
    logger.info("Shutting down...")


# === App Creation ===
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title="Race Planner API",
        description="GPX ingestion for the race catalog and catalog-to-plan import",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.rate_limiter = RateLimiter(
        limit=settings.rate_limit_requests,
        period_s=settings.rate_limit_period,
    )

    # === Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    # === Routes ===
    app.include_router(api_router, prefix="/api")

    # === Health Check ===
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()
