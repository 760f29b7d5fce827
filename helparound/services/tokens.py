"""Session token helpers."""

from __future__ import annotations

import uuid
from datetime import timedelta

from jose import JWTError, jwt

from ..core.config import JWT_ALGORITHM, JWT_EXPIRES_MINUTES, JWT_SECRET
from ..core.errors import AuthError
from ..core.time import utcnow


def create_access_token(user_id: uuid.UUID, expires_minutes: int | None = None) -> str:
    minutes = JWT_EXPIRES_MINUTES if expires_minutes is None else expires_minutes
    payload = {
        "sub": str(user_id),
        "exp": utcnow() + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> uuid.UUID:
    """Return the user id carried by ``token`` or raise ``AuthError``."""

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        raise AuthError("Invalid or expired token") from exc

    subject = payload.get("sub")
    if not subject:
        raise AuthError("Invalid token payload")
    try:
        return uuid.UUID(str(subject))
    except ValueError as exc:
        raise AuthError("Invalid token payload") from exc


__all__ = ["create_access_token", "decode_access_token"]
