"""Password accounts, profile maintenance and serialisation helpers."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from ..core.config import PASSWORD_MIN_LENGTH
from ..core.errors import AuthError, ConflictError, NotFoundError, ValidationError
from ..models import OAuthAccount, User
from .identity import normalize_email
from .passwords import hash_password, verify_password
from .store import DuplicateRecordError, IdentityStore

logger = logging.getLogger(__name__)


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


def user_to_dict(user: User) -> Dict[str, Any]:
    """Serialise a user for API responses. Never includes the password hash."""

    return {
        "id": str(user.id),
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "image": user.image,
        "isVerified": user.is_verified,
        "hasPassword": user.has_password,
        "createdAt": _isoformat(user.created_at),
        "updatedAt": _isoformat(user.updated_at),
    }


def link_to_dict(link: OAuthAccount) -> Dict[str, Any]:
    return {
        "id": str(link.id),
        "provider": link.provider.value,
        "providerId": link.provider_id,
        "userId": str(link.user_id),
        "createdAt": _isoformat(link.created_at),
    }


def _require_text(**fields: Any) -> None:
    for name, value in fields.items():
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{name} must be a string")


def _check_password_length(password: str) -> None:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
        )


async def register_user(
    store: IdentityStore,
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
) -> User:
    _require_text(firstName=first_name, lastName=last_name, email=email, password=password)
    if not first_name or not last_name or not email or not password:
        raise ValidationError("All fields are required")
    _check_password_length(password)

    email = normalize_email(email)
    if await store.get_user_by_email(email) is not None:
        raise ConflictError("User already exists")

    try:
        user = await store.insert_user(
            User(
                email=email,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                password_hash=hash_password(password),
                is_verified=False,
            )
        )
    except DuplicateRecordError as exc:
        raise ConflictError("User already exists") from exc

    logger.info("Registered user %s", user.id)
    return user


async def authenticate(store: IdentityStore, *, email: str, password: str) -> User:
    _require_text(email=email, password=password)
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = await store.get_user_by_email(normalize_email(email))
    if user is None or not verify_password(password, user.password_hash):
        raise AuthError("Invalid email or password")
    return user


async def _get_user(store: IdentityStore, user_id: uuid.UUID) -> User:
    user = await store.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def update_profile(
    store: IdentityStore,
    user_id: uuid.UUID,
    *,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> User:
    _require_text(firstName=first_name, lastName=last_name)
    user = await _get_user(store, user_id)
    if first_name is not None:
        user.first_name = first_name.strip()
    if last_name is not None:
        user.last_name = last_name.strip()
    return await store.update_user(user)


async def change_password(
    store: IdentityStore,
    user_id: uuid.UUID,
    *,
    new_password: str,
    current_password: Optional[str] = None,
) -> User:
    """Set a new password.

    Users who already have a password must confirm it. OAuth-only users may
    set their first password this way, which also lets them unlink their
    last provider afterwards.
    """

    _require_text(newPassword=new_password, currentPassword=current_password)
    if not new_password:
        raise ValidationError("New password is required")
    _check_password_length(new_password)

    user = await _get_user(store, user_id)
    if user.has_password and not verify_password(current_password or "", user.password_hash):
        raise AuthError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    user = await store.update_user(user)
    logger.info("Password changed for user %s", user.id)
    return user


async def delete_account(store: IdentityStore, user_id: uuid.UUID) -> None:
    await _get_user(store, user_id)
    await store.delete_user(user_id)
    logger.info("Deleted user %s", user_id)


__all__ = [
    "authenticate",
    "change_password",
    "delete_account",
    "link_to_dict",
    "register_user",
    "update_profile",
    "user_to_dict",
]
