"""Resolve provider identities to local users and manage provider links.

Identities reaching this module have already been verified by a credential
verifier; nothing here re-checks tokens or rewrites profile fields beyond
normalising the email address.

Resolution order for an inbound identity:

1. an existing link for ``(provider, provider_id)`` wins, whatever email the
   provider reports today;
2. otherwise a user with the same (normalised) email is linked implicitly.
   This trusts the provider's verified email to merge into a pre-existing
   local account, so only providers that verify email ownership belong here;
3. otherwise a new verified, password-less user is created and linked.

The lookups and inserts are not atomic. The store's unique constraints are
the source of truth: a concurrent resolution that loses the race sees a
``DuplicateRecordError`` and the lookup path is replayed once.
"""

from __future__ import annotations

import logging
import uuid

from ..core.errors import ConflictError, InvariantViolation, NotFoundError
from ..models import AuthProvider, OAuthAccount, OAuthIdentity, User
from .store import DuplicateRecordError, IdentityStore

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class IdentityResolver:
    def __init__(self, store: IdentityStore) -> None:
        self.store = store

    async def resolve_or_create(self, identity: OAuthIdentity) -> User:
        """Return the local user for ``identity``, linking or creating as needed."""

        try:
            return await self._find_or_create(identity)
        except DuplicateRecordError:
            logger.warning(
                "Concurrent resolution for %s identity %s, retrying lookup",
                identity.provider.value,
                identity.provider_id,
            )
            return await self._find_or_create(identity)

    async def _find_or_create(self, identity: OAuthIdentity) -> User:
        link = await self.store.get_link(identity.provider, identity.provider_id)
        if link is not None:
            user = await self.store.get_user(link.user_id)
            if user is None:
                raise NotFoundError("User not found")
            logger.info("Resolved %s login to user %s", identity.provider.value, user.id)
            return user

        email = normalize_email(identity.email)
        user = await self.store.get_user_by_email(email)
        created = user is None
        if created:
            user = await self.store.insert_user(
                User(
                    email=email,
                    first_name=identity.first_name or "",
                    last_name=identity.last_name or "",
                    image=identity.image,
                    is_verified=True,
                )
            )
            logger.info("Created user %s from %s login", user.id, identity.provider.value)
        else:
            logger.info(
                "Linking %s identity to existing user %s by email",
                identity.provider.value,
                user.id,
            )

        user_id = user.id
        try:
            await self.store.insert_link(
                OAuthAccount(
                    provider=identity.provider,
                    provider_id=identity.provider_id,
                    user_id=user_id,
                )
            )
        except DuplicateRecordError:
            # A user created here must not outlive its link.
            if created:
                await self.store.delete_user(user_id)
                logger.info("Removed user %s after losing the link insert", user_id)
            raise
        return user

    async def link_provider(
        self, user_id: uuid.UUID, identity: OAuthIdentity
    ) -> OAuthAccount:
        """Bind ``identity`` to an existing user.

        Fails with ``ConflictError`` when the identity is linked to any user,
        including ``user_id`` itself.
        """

        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        existing = await self.store.get_link(identity.provider, identity.provider_id)
        if existing is not None:
            raise ConflictError("OAuth account already linked to a user")

        try:
            link = await self.store.insert_link(
                OAuthAccount(
                    provider=identity.provider,
                    provider_id=identity.provider_id,
                    user_id=user_id,
                )
            )
        except DuplicateRecordError as exc:
            raise ConflictError("OAuth account already linked to a user") from exc

        logger.info("Linked %s identity to user %s", identity.provider.value, user_id)
        return link

    async def unlink_provider(self, user_id: uuid.UUID, provider: AuthProvider) -> User:
        """Remove the user's link for ``provider``.

        Refuses to remove the last link of a user without a password.
        """

        link = await self.store.get_user_link(user_id, provider)
        if link is None:
            raise NotFoundError("OAuth provider not linked")

        link_count = await self.store.count_links(user_id)
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        if link_count <= 1 and not user.has_password:
            raise InvariantViolation(
                "Cannot remove last login method without a password set"
            )

        await self.store.delete_link(link.id)
        logger.info("Unlinked %s from user %s", provider.value, user_id)
        return user


__all__ = ["IdentityResolver", "normalize_email"]
