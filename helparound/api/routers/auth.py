"""Authentication and provider linking routes."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from fastapi import APIRouter, Depends

from ...core import ValidationError
from ...models import AuthProvider, User
from ...services import (
    CredentialVerifier,
    IdentityResolver,
    SQLIdentityStore,
    authenticate,
    create_access_token,
    link_to_dict,
    register_user,
    user_to_dict,
)
from ..deps import get_current_user, get_resolver, get_store, get_verifiers, text_field

router = APIRouter(prefix="/auth", tags=["auth"])


def _parse_provider(raw: str) -> AuthProvider:
    try:
        return AuthProvider(raw.strip().upper())
    except ValueError:
        raise ValidationError(f"Unsupported provider: {raw}") from None


def _require_token(body: Dict[str, Any]) -> str:
    token = body.get("token")
    if not token or not isinstance(token, str):
        raise ValidationError("Token is required")
    return token


def _session_payload(user: User) -> Dict[str, Any]:
    return {"user": user_to_dict(user), "token": create_access_token(user.id)}


@router.post("/register", status_code=201)
async def register(body: Dict[str, Any], store: SQLIdentityStore = Depends(get_store)):
    user = await register_user(
        store,
        first_name=(text_field(body, "firstName") or "").strip(),
        last_name=(text_field(body, "lastName") or "").strip(),
        email=(text_field(body, "email") or "").strip(),
        password=text_field(body, "password") or "",
    )
    return _session_payload(user)


@router.post("/login")
async def login(body: Dict[str, Any], store: SQLIdentityStore = Depends(get_store)):
    user = await authenticate(
        store,
        email=(text_field(body, "email") or "").strip(),
        password=text_field(body, "password") or "",
    )
    return _session_payload(user)


@router.post("/logout")
def logout():
    # Tokens are stateless; the client simply discards its copy.
    return {"message": "Logged out successfully"}


async def _oauth_login(
    provider: AuthProvider,
    body: Dict[str, Any],
    resolver: IdentityResolver,
    verifiers: Mapping[AuthProvider, CredentialVerifier],
) -> Dict[str, Any]:
    token = _require_token(body)
    identity = await verifiers[provider].verify(token)
    user = await resolver.resolve_or_create(identity)
    return _session_payload(user)


@router.post("/google")
async def google_login(
    body: Dict[str, Any],
    resolver: IdentityResolver = Depends(get_resolver),
    verifiers: Mapping[AuthProvider, CredentialVerifier] = Depends(get_verifiers),
):
    return await _oauth_login(AuthProvider.GOOGLE, body, resolver, verifiers)


@router.post("/facebook")
async def facebook_login(
    body: Dict[str, Any],
    resolver: IdentityResolver = Depends(get_resolver),
    verifiers: Mapping[AuthProvider, CredentialVerifier] = Depends(get_verifiers),
):
    return await _oauth_login(AuthProvider.FACEBOOK, body, resolver, verifiers)


@router.get("/providers")
async def list_providers(
    user: User = Depends(get_current_user),
    store: SQLIdentityStore = Depends(get_store),
):
    links = await store.list_links(user.id)
    return {
        "providers": [link_to_dict(link) for link in links],
        "hasPassword": user.has_password,
    }


@router.post("/providers/{provider}", status_code=201)
async def link_provider(
    provider: str,
    body: Dict[str, Any],
    user: User = Depends(get_current_user),
    resolver: IdentityResolver = Depends(get_resolver),
    verifiers: Mapping[AuthProvider, CredentialVerifier] = Depends(get_verifiers),
):
    target = _parse_provider(provider)
    token = _require_token(body)
    identity = await verifiers[target].verify(token)
    link = await resolver.link_provider(user.id, identity)
    return {"message": "Provider linked successfully", "provider": link_to_dict(link)}


@router.delete("/providers/{provider}")
async def unlink_provider(
    provider: str,
    user: User = Depends(get_current_user),
    resolver: IdentityResolver = Depends(get_resolver),
):
    target = _parse_provider(provider)
    await resolver.unlink_provider(user.id, target)
    return {"message": "Provider unlinked successfully"}


__all__ = ["router"]
