"""Database model for third-party identities linked to local users."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..core.time import utcnow


class AuthProvider(str, enum.Enum):
    GOOGLE = "GOOGLE"
    FACEBOOK = "FACEBOOK"


class OAuthAccount(SQLModel, table=True):
    """One external (provider, provider_id) identity bound to one user."""

    __tablename__ = "oauth_accounts"
    __table_args__ = (
        UniqueConstraint("provider", "provider_id", name="uq_oauth_provider_identity"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    provider: AuthProvider
    provider_id: str
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)


@dataclass(frozen=True)
class OAuthIdentity:
    """Identity asserted by a provider after its token has been verified."""

    provider: AuthProvider
    provider_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image: Optional[str] = None


__all__ = ["AuthProvider", "OAuthAccount", "OAuthIdentity"]
