"""Database model for local user accounts."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from ..core.time import utcnow


class User(SQLModel, table=True):
    """Local account, registered with a password or created by OAuth login."""

    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    email: str = Field(index=True, unique=True)
    first_name: str = ""
    last_name: str = ""
    password_hash: Optional[str] = None
    image: Optional[str] = None
    is_verified: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)


__all__ = ["User"]
