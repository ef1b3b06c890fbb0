"""CastCanvas API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map CastCanvasError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Services (store, ledger, verifier) built once in the lifespan and kept on
      app.state; the database is only initialized when a SQL backend is selected

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - create_all on startup keeps single-node deployments migration-free;
      alembic remains the source of truth for managed databases
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from castcanvas.api.error_handlers import register_error_handlers
from castcanvas.api.routes import canvas, health, purchase
from castcanvas.config import get_settings
from castcanvas.infrastructure.database import DatabaseSessionManager
from castcanvas.infrastructure.observability import setup_logging
from castcanvas.services.container import build_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = None
    if settings.uses_database:
        db = DatabaseSessionManager(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        await db.create_all()
    app.state.services = build_services(settings, db)
    logger.info("CastCanvas API started")
    yield
    logger.info("CastCanvas API shutting down")
    await app.state.services.aclose()
    if db is not None:
        await db.dispose()


app = FastAPI(
    title="CastCanvas API", version="1.0.0", lifespan=lifespan,
)

# CORS — configured from settings, not hardcoded
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes — explicit registration (no convention-over-config)
app.include_router(health.router)
app.include_router(canvas.router)
app.include_router(purchase.router)

register_error_handlers(app)
