"""Application settings and environment helpers."""

from __future__ import annotations

import os
from typing import Iterable, List

from dotenv import load_dotenv

load_dotenv(override=False)


def _require_env(name: str) -> str:
    """Return a required environment variable or raise an error."""

    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def _split_csv(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


# Session tokens -------------------------------------------------------------
JWT_SECRET = _require_env("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = _env_int("JWT_EXPIRES_MINUTES", 60)

PASSWORD_MIN_LENGTH = _env_int("PASSWORD_MIN_LENGTH", 8)


# Identity providers ---------------------------------------------------------
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID") or None
GOOGLE_CERTS_URL = os.getenv(
    "GOOGLE_CERTS_URL", "https://www.googleapis.com/oauth2/v3/certs"
)
FACEBOOK_GRAPH_URL = os.getenv("FACEBOOK_GRAPH_URL", "https://graph.facebook.com")
PROVIDER_HTTP_TIMEOUT = _env_int("PROVIDER_HTTP_TIMEOUT", 20)


# Persistence ----------------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///data/app.db")
DB_ECHO = _env_bool("DB_ECHO", False)
DB_RESET = _env_bool("DB_RESET", False)


# HTTP surface ---------------------------------------------------------------
_local_dev_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

ALLOWED_CORS_ORIGINS = _unique(
    [
        *_split_csv(os.getenv("ALLOWED_CORS_ORIGINS")),
        *_local_dev_origins,
    ]
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "DATABASE_URL",
    "DB_ECHO",
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
]
