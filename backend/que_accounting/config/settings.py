"""
Runtime configuration loaded from environment variables.

Settings are read once and cached; tests call reset_settings() after
changing the environment.

Environment:
- JWT_SECRET (required), JWT_ISSUER, JWT_AUDIENCE, JWT_ALGORITHM
- JWT_ACCESS_TTL_SECONDS (default 7 days), JWT_REFRESH_TTL_SECONDS (default 30 days)
- BOOTSTRAP_ADMIN_EMAIL / BOOTSTRAP_ADMIN_PASSWORD (break-glass subscription admin)
- DATABASE_URL, DB_STATEMENT_TIMEOUT_MS
"""

import os
import logging
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_ISSUER = "QUE-Accounting"
DEFAULT_AUDIENCE = "QUE-Accounting-Users"
DEFAULT_ACCESS_TTL_SECONDS = 7 * 24 * 60 * 60
DEFAULT_REFRESH_TTL_SECONDS = 30 * 24 * 60 * 60


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing or invalid."""
    pass


class AuthSettings(BaseModel):
    """Token signing and verification settings."""
    jwt_secret: str = Field(..., min_length=1)
    algorithm: str = "HS256"
    issuer: str = DEFAULT_ISSUER
    audience: str = DEFAULT_AUDIENCE
    access_ttl_seconds: int = Field(DEFAULT_ACCESS_TTL_SECONDS, gt=0)
    refresh_ttl_seconds: int = Field(DEFAULT_REFRESH_TTL_SECONDS, gt=0)
    leeway_seconds: int = Field(0, ge=0)


class BootstrapAdminSettings(BaseModel):
    """
    Environment-declared subscription administrator.

    This identity has no users row. It is enabled only when both the email
    and the password are configured.
    """
    email: Optional[str] = None
    password: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.email) and bool(self.password)


class DatabaseSettings(BaseModel):
    """Datastore connection settings."""
    url: Optional[str] = None
    statement_timeout_ms: int = Field(5000, gt=0)


class Settings(BaseModel):
    """Aggregate application settings."""
    auth: AuthSettings
    bootstrap_admin: BootstrapAdminSettings
    database: DatabaseSettings


def _normalize_database_url(url: Optional[str]) -> Optional[str]:
    # Handle Render-style postgres:// URLs (SQLAlchemy requires postgresql://)
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def load_settings() -> Settings:
    """
    Build Settings from the current environment.

    Raises:
        ConfigurationError: If JWT_SECRET is not set
    """
    jwt_secret = os.getenv("JWT_SECRET")
    if not jwt_secret:
        logger.error("JWT_SECRET environment variable is not set")
        raise ConfigurationError("JWT_SECRET environment variable is required")

    bootstrap = BootstrapAdminSettings(
        email=os.getenv("BOOTSTRAP_ADMIN_EMAIL") or None,
        password=os.getenv("BOOTSTRAP_ADMIN_PASSWORD") or None,
    )
    if not bootstrap.enabled:
        logger.info("Bootstrap subscription admin is disabled")

    return Settings(
        auth=AuthSettings(
            jwt_secret=jwt_secret,
            algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            issuer=os.getenv("JWT_ISSUER", DEFAULT_ISSUER),
            audience=os.getenv("JWT_AUDIENCE", DEFAULT_AUDIENCE),
            access_ttl_seconds=int(os.getenv("JWT_ACCESS_TTL_SECONDS", str(DEFAULT_ACCESS_TTL_SECONDS))),
            refresh_ttl_seconds=int(os.getenv("JWT_REFRESH_TTL_SECONDS", str(DEFAULT_REFRESH_TTL_SECONDS))),
        ),
        bootstrap_admin=bootstrap,
        database=DatabaseSettings(
            url=_normalize_database_url(os.getenv("DATABASE_URL")),
            statement_timeout_ms=int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000")),
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor, also usable as a FastAPI dependency."""
    return load_settings()


def reset_settings() -> None:
    """Clear the settings cache (tests and reconfiguration)."""
    get_settings.cache_clear()
