"""
Peroxide - Database Configuration

SQLModel database setup with a bounded connection pool.
Supports SQLite (default) and any SQLAlchemy URL (e.g. PostgreSQL).

Usage:
    from peroxide.auth.database import get_engine, init_db

    engine = get_engine(settings)
    init_db(engine)  # Creates tables
"""

from typing import Optional

from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from peroxide.config import Settings, settings as default_settings


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def get_engine(
    config: Optional[Settings] = None,
    database_url: Optional[str] = None,
    echo: bool = False,
) -> Engine:
    """
    Create SQLAlchemy engine with appropriate configuration.

    Args:
        config: Settings providing URL and pool limits
        database_url: Override database URL
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine

    The pool never grows past DB_POOL_SIZE connections; a checkout that
    waits longer than DB_POOL_TIMEOUT_SECONDS raises instead of blocking.
    """
    config = config or default_settings
    url = database_url or config.DATABASE_URL

    if url.startswith("sqlite") and _is_memory_sqlite(url):
        # One shared connection, otherwise every checkout sees an empty database
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(
        url,
        echo=echo,
        connect_args=connect_args,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=0,
        pool_timeout=config.DB_POOL_TIMEOUT_SECONDS,
        pool_pre_ping=True,
    )


def init_db(engine: Engine) -> None:
    """
    Initialize database tables.

    Safe to call multiple times (uses CREATE IF NOT EXISTS).
    """
    # Import models to register them with SQLModel
    from peroxide.auth.models import User  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session_factory(engine: Engine):
    """
    Create a session factory bound to engine.

    Returns:
        Callable that creates new database sessions
    """
    def session_factory() -> Session:
        return Session(engine)

    return session_factory

