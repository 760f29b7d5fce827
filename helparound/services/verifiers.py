"""Provider credential verifiers.

Each verifier exchanges an opaque provider token for a verified
``OAuthIdentity``. Anything wrong with the token itself is reported as
``AuthError``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol, Set

import httpx
from authlib.common.encoding import json_loads, to_bytes, urlsafe_b64decode
from authlib.jose import JsonWebKey, JsonWebToken
from authlib.jose.errors import JoseError

from ..core.config import (
    FACEBOOK_GRAPH_URL,
    GOOGLE_CERTS_URL,
    GOOGLE_CLIENT_ID,
    PROVIDER_HTTP_TIMEOUT,
)
from ..core.errors import AppError, AuthError, ValidationError
from ..models import AuthProvider, OAuthIdentity

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ["accounts.google.com", "https://accounts.google.com"]
FACEBOOK_FIELDS = "id,first_name,last_name,email,picture"


class CredentialVerifier(Protocol):
    provider: AuthProvider

    async def verify(self, token: str) -> OAuthIdentity: ...


def _require_email(provider: AuthProvider, email: Optional[str]) -> str:
    if not email:
        raise ValidationError(f"{provider.value.title()} account has no email address")
    return email


def _token_kid(token: str) -> Optional[str]:
    """Read ``kid`` from the unverified JOSE header, if there is one."""
    try:
        header = json_loads(urlsafe_b64decode(to_bytes(token.split(".", 1)[0])))
    except (TypeError, ValueError):
        return None
    return header.get("kid") if isinstance(header, dict) else None


class GoogleVerifier:
    """Verifies Google ID tokens against Google's published signing keys.

    The key set is fetched once and kept on the instance. It is fetched
    again only when a token names a ``kid`` the cached set does not hold,
    which is how Google key rotation shows up.
    """

    provider = AuthProvider.GOOGLE

    def __init__(
        self,
        client_id: Optional[str] = GOOGLE_CLIENT_ID,
        *,
        certs_url: str = GOOGLE_CERTS_URL,
        timeout: float = PROVIDER_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.client_id = client_id
        self.certs_url = certs_url
        self.timeout = timeout
        self.transport = transport
        self._jwt = JsonWebToken(["RS256"])
        self._keys = None
        self._kids: Set[str] = set()

    async def _fetch_keys(self):
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            r = await client.get(self.certs_url)
            r.raise_for_status()
            return JsonWebKey.import_key_set(r.json())

    async def _signing_keys(self, kid: Optional[str]):
        if self._keys is None or (kid and kid not in self._kids):
            keys = await self._fetch_keys()
            self._keys = keys
            self._kids = {key.kid for key in keys.keys if key.kid}
            logger.info("Loaded %d Google signing keys", len(self._kids))
        return self._keys

    async def verify(self, token: str) -> OAuthIdentity:
        if not self.client_id:
            raise AppError(
                "Google OAuth not configured. Check GOOGLE_CLIENT_ID.", status_code=500
            )

        try:
            keys = await self._signing_keys(_token_kid(token))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Could not fetch Google signing keys: %s", exc)
            raise AuthError("Invalid Google token") from exc

        claims_options = {
            "iss": {"essential": True, "values": GOOGLE_ISSUERS},
            "aud": {"essential": True, "value": self.client_id},
            "sub": {"essential": True},
            "exp": {"essential": True},
        }
        try:
            claims = self._jwt.decode(token, keys, claims_options=claims_options)
            claims.validate()
        except (JoseError, ValueError) as exc:
            logger.info("Rejected Google token: %s", exc)
            raise AuthError("Invalid Google token") from exc

        # Implicit linking by email requires a verified address.
        if claims.get("email_verified") is False:
            raise ValidationError("Google account email is not verified")

        return OAuthIdentity(
            provider=self.provider,
            provider_id=str(claims["sub"]),
            email=_require_email(self.provider, claims.get("email")),
            first_name=claims.get("given_name") or "",
            last_name=claims.get("family_name") or "",
            image=claims.get("picture"),
        )


class FacebookVerifier:
    """Verifies Facebook access tokens by reading the Graph API profile."""

    provider = AuthProvider.FACEBOOK

    def __init__(
        self,
        *,
        graph_url: str = FACEBOOK_GRAPH_URL,
        timeout: float = PROVIDER_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.graph_url = graph_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def verify(self, token: str) -> OAuthIdentity:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.get(
                    f"{self.graph_url}/me",
                    params={"access_token": token, "fields": FACEBOOK_FIELDS},
                )
        except httpx.HTTPError as exc:
            logger.warning("Facebook Graph API request failed: %s", exc)
            raise AuthError("Invalid Facebook token") from exc

        if r.status_code != 200:
            logger.info("Rejected Facebook token: HTTP %s", r.status_code)
            raise AuthError("Invalid Facebook token")

        try:
            data: Dict[str, Any] = r.json() or {}
        except ValueError as exc:
            raise AuthError("Invalid Facebook token") from exc
        if not data.get("id"):
            raise AuthError("Invalid Facebook token")

        picture = (data.get("picture") or {}).get("data") or {}
        return OAuthIdentity(
            provider=self.provider,
            provider_id=str(data["id"]),
            email=_require_email(self.provider, data.get("email")),
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            image=picture.get("url"),
        )


def default_verifiers() -> Mapping[AuthProvider, CredentialVerifier]:
    return {
        AuthProvider.GOOGLE: GoogleVerifier(),
        AuthProvider.FACEBOOK: FacebookVerifier(),
    }


__all__ = [
    "CredentialVerifier",
    "FacebookVerifier",
    "GoogleVerifier",
    "default_verifiers",
]
