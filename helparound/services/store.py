"""Persistence for users and their linked provider identities."""

from __future__ import annotations

import uuid
from typing import List, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlmodel import func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.time import utcnow
from ..models import AuthProvider, OAuthAccount, User


class DuplicateRecordError(Exception):
    """A unique constraint rejected an insert (email or provider identity)."""


class IdentityStore(Protocol):
    async def get_user(self, user_id: uuid.UUID) -> Optional[User]: ...

    async def get_user_by_email(self, email: str) -> Optional[User]: ...

    async def get_link(
        self, provider: AuthProvider, provider_id: str
    ) -> Optional[OAuthAccount]: ...

    async def get_user_link(
        self, user_id: uuid.UUID, provider: AuthProvider
    ) -> Optional[OAuthAccount]: ...

    async def list_links(self, user_id: uuid.UUID) -> List[OAuthAccount]: ...

    async def count_links(self, user_id: uuid.UUID) -> int: ...

    async def insert_user(self, user: User) -> User: ...

    async def insert_link(self, link: OAuthAccount) -> OAuthAccount: ...

    async def delete_link(self, link_id: uuid.UUID) -> None: ...

    async def update_user(self, user: User) -> User: ...

    async def delete_user(self, user_id: uuid.UUID) -> None: ...


class SQLIdentityStore:
    """``IdentityStore`` backed by an async SQLModel session.

    Every write commits immediately. Unique constraint failures are rolled
    back and surfaced as ``DuplicateRecordError``; all other database errors
    propagate unchanged.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.session.exec(select(User).where(User.email == email))
        return result.first()

    async def get_link(
        self, provider: AuthProvider, provider_id: str
    ) -> Optional[OAuthAccount]:
        result = await self.session.exec(
            select(OAuthAccount)
            .where(OAuthAccount.provider == provider)
            .where(OAuthAccount.provider_id == provider_id)
        )
        return result.first()

    async def get_user_link(
        self, user_id: uuid.UUID, provider: AuthProvider
    ) -> Optional[OAuthAccount]:
        result = await self.session.exec(
            select(OAuthAccount)
            .where(OAuthAccount.user_id == user_id)
            .where(OAuthAccount.provider == provider)
            .order_by(OAuthAccount.created_at)
        )
        return result.first()

    async def list_links(self, user_id: uuid.UUID) -> List[OAuthAccount]:
        result = await self.session.exec(
            select(OAuthAccount)
            .where(OAuthAccount.user_id == user_id)
            .order_by(OAuthAccount.created_at)
        )
        return list(result.all())

    async def count_links(self, user_id: uuid.UUID) -> int:
        result = await self.session.exec(
            select(func.count())
            .select_from(OAuthAccount)
            .where(OAuthAccount.user_id == user_id)
        )
        return int(result.one())

    async def insert_user(self, user: User) -> User:
        return await self._insert(user)

    async def insert_link(self, link: OAuthAccount) -> OAuthAccount:
        return await self._insert(link)

    async def delete_link(self, link_id: uuid.UUID) -> None:
        link = await self.session.get(OAuthAccount, link_id)
        if link is None:
            return
        await self.session.delete(link)
        await self.session.commit()

    async def update_user(self, user: User) -> User:
        user.updated_at = utcnow()
        try:
            self.session.add(user)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise DuplicateRecordError(str(exc.orig)) from exc
        await self.session.refresh(user)
        return user

    async def delete_user(self, user_id: uuid.UUID) -> None:
        user = await self.session.get(User, user_id)
        if user is None:
            return
        for link in await self.list_links(user_id):
            await self.session.delete(link)
        await self.session.flush()
        await self.session.delete(user)
        await self.session.commit()

    async def _insert(self, record):
        self.session.add(record)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise DuplicateRecordError(str(exc.orig)) from exc
        await self.session.refresh(record)
        return record


__all__ = ["DuplicateRecordError", "IdentityStore", "SQLIdentityStore"]
