"""FastAPI application for the FitUp backend."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import Settings, get_settings
from ..data.catalog_loader import load_catalog
from ..db.database import Database
from ..db.engine import init_db, seed_exercises
from ..logging_config import configure_logging
from ..realtime.hub import Hub
from ..services.container import build_services
from .auth import TokenService
from .exception_handlers import register_exception_handlers
from .routers import analytics, coaching, messages, plans, profile_goals, sessions, ws

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and hub on startup; drain the hub on shutdown."""
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)

    db_path = settings.database_path
    await init_db(db_path)
    exercises, catalog = load_catalog(settings.catalog_path)
    await seed_exercises(db_path, exercises)

    database = Database(db_path, settings.read_timeout, settings.write_timeout)
    hub = Hub()
    hub.start()
    app.state.services = build_services(
        database,
        hub=hub,
        catalog=catalog,
        frontend_url=settings.frontend_url,
        pdf_timeout=settings.pdf_export_timeout,
    )
    logger.info("FitUp API ready (database %s)", db_path)
    yield
    await hub.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    app = FastAPI(
        title="fitup",
        description="Adaptive workout planning, analytics and coach messaging",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.tokens = TokenService(
        settings.jwt_secret,
        settings.jwt_algorithm,
        settings.jwt_exp_seconds,
        settings.refresh_token_exp_seconds,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(plans.router)
    app.include_router(sessions.router)
    app.include_router(analytics.router)
    app.include_router(coaching.router)
    app.include_router(coaching.invitations_router)
    app.include_router(messages.router)
    app.include_router(profile_goals.router)
    app.include_router(ws.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
