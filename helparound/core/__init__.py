"""Core configuration and infrastructure helpers."""

from .config import (
    ALLOWED_CORS_ORIGINS,
    DATABASE_URL,
    DB_RESET,
    FACEBOOK_GRAPH_URL,
    GOOGLE_CERTS_URL,
    GOOGLE_CLIENT_ID,
    JWT_ALGORITHM,
    JWT_EXPIRES_MINUTES,
    JWT_SECRET,
    LOG_LEVEL,
    PASSWORD_MIN_LENGTH,
    PROVIDER_HTTP_TIMEOUT,
)
from .database import SessionLocal, engine, get_session, init_db
from .errors import (
    AppError,
    AuthError,
    ConflictError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
)
from .logging import configure_logging
from .time import utcnow

__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "DATABASE_URL",
    "DB_RESET",
    "FACEBOOK_GRAPH_URL",
    "GOOGLE_CERTS_URL",
    "GOOGLE_CLIENT_ID",
    "JWT_ALGORITHM",
    "JWT_EXPIRES_MINUTES",
    "JWT_SECRET",
    "LOG_LEVEL",
    "PASSWORD_MIN_LENGTH",
    "PROVIDER_HTTP_TIMEOUT",
    "AppError",
    "AuthError",
    "ConflictError",
    "InvariantViolation",
    "NotFoundError",
    "SessionLocal",
    "ValidationError",
    "configure_logging",
    "engine",
    "get_session",
    "init_db",
    "utcnow",
]
