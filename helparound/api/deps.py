"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from fastapi import Depends, Header
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core import AuthError, ValidationError, get_session
from ..models import AuthProvider, User
from ..services import (
    CredentialVerifier,
    IdentityResolver,
    SQLIdentityStore,
    decode_access_token,
    default_verifiers,
)

_verifiers: Optional[Mapping[AuthProvider, CredentialVerifier]] = None


def get_store(session: AsyncSession = Depends(get_session)) -> SQLIdentityStore:
    return SQLIdentityStore(session)


def get_resolver(store: SQLIdentityStore = Depends(get_store)) -> IdentityResolver:
    return IdentityResolver(store)


def get_verifiers() -> Mapping[AuthProvider, CredentialVerifier]:
    global _verifiers
    if _verifiers is None:
        _verifiers = default_verifiers()
    return _verifiers


def text_field(body: Dict[str, Any], key: str) -> Optional[str]:
    """Return a string field from a JSON body, or None when it is absent."""
    value = body.get(key)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Authorization header missing or malformed")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthError("Authorization header missing or malformed")
    return token


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    store: SQLIdentityStore = Depends(get_store),
) -> User:
    user_id = decode_access_token(bearer_token(authorization))
    user = await store.get_user(user_id)
    if user is None:
        raise AuthError("Unauthorized access")
    return user


__all__ = [
    "bearer_token",
    "get_current_user",
    "get_resolver",
    "get_store",
    "get_verifiers",
    "text_field",
]
