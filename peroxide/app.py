"""
Peroxide - FastAPI Application Entrypoint

This module initializes the FastAPI application with:
- CORS and security middleware
- Authentication routes and dependencies
- Database and signing keyring lifecycle

The signing keyring and database engine are created exactly once, in the
lifespan, and handed to handlers through app.state. A missing JWT_SECRET
aborts startup before any request is served.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from peroxide.config import Settings, settings as default_settings
from peroxide.gateway.middleware import SecurityMiddleware
from peroxide.auth.database import get_engine, init_db, get_session_factory
from peroxide.auth.keyring import SecretKeyring
from peroxide.auth.routes import router as auth_router


logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Configure logging at LOG_LEVEL
        - Build the signing keyring (fails fast without JWT_SECRET)
        - Create the database engine and tables

    Shutdown:
        - Dispose the engine's connection pool
    """
    settings: Settings = app.state.settings

    configure_logging(settings.LOG_LEVEL)
    app.state.keyring = SecretKeyring.from_settings(settings)

    engine = get_engine(settings)
    init_db(engine)
    app.state.db_engine = engine
    app.state.db_session_factory = get_session_factory(engine)
    logger.info("Credential store ready at %s", engine.url.render_as_string(hide_password=True))

    yield

    engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Explicit settings (defaults to the environment)
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Peroxide",
        description="Multi-site publishing server",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "PUT", "PATCH"],
        allow_headers=["Content-Type"],
    )
    app.add_middleware(SecurityMiddleware)

    app.include_router(auth_router, prefix="/api")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": VERSION}

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "Peroxide",
            "version": VERSION,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()
