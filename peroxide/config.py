"""
Peroxide - Configuration Management

Centralized configuration using Pydantic Settings.
All secrets and connection strings are loaded from environment variables.

Security: No signing key is hardcoded. JWT_SECRET must be supplied by the
environment (or .env for local development); startup fails without it.
"""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        JWT_SECRET: Symmetric key material for session token signatures
        JWT_ALGORITHM: Token signature algorithm
        SESSION_EXPIRE_HOURS: Lifetime of an issued session token
        SESSION_COOKIE_NAME: Reserved cookie carrying the session token
        SESSION_COOKIE_MAX_AGE_SECONDS: Browser retention of the cookie
        DATABASE_URL: SQLAlchemy URL of the credential store
        DB_POOL_SIZE: Maximum simultaneous store connections
        ALLOWED_ORIGINS: CORS allowed origins
    """

    # Security
    JWT_SECRET: str = ""  # Must be set via environment
    JWT_ALGORITHM: str = "HS256"
    SESSION_EXPIRE_HOURS: int = 24

    # Session cookie
    SESSION_COOKIE_NAME: str = "jwt-token"
    SESSION_COOKIE_MAX_AGE_SECONDS: int = 60 * 60 * 12
    SESSION_COOKIE_SECURE: bool = True
    SESSION_COOKIE_SAMESITE: str = "lax"

    # Database
    DATABASE_URL: str = "sqlite:///./db.sqlite3"
    DB_POOL_SIZE: int = 50
    DB_POOL_TIMEOUT_SECONDS: int = 30

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
