"""User profile and account maintenance endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...core import ValidationError
from ...models import User
from ...services import (
    SQLIdentityStore,
    change_password,
    delete_account,
    update_profile,
    user_to_dict,
)
from ..deps import get_current_user, get_store, text_field

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me")
async def get_profile(user: User = Depends(get_current_user)):
    return {"user": user_to_dict(user)}


@router.put("/me")
async def update_me(
    body: Dict[str, Any],
    user: User = Depends(get_current_user),
    store: SQLIdentityStore = Depends(get_store),
):
    first_name = text_field(body, "firstName")
    last_name = text_field(body, "lastName")
    if first_name is None and last_name is None:
        raise ValidationError("Nothing to update")

    updated = await update_profile(
        store, user.id, first_name=first_name, last_name=last_name
    )
    return {"message": "User profile updated successfully", "user": user_to_dict(updated)}


@router.put("/me/password")
async def update_password(
    body: Dict[str, Any],
    user: User = Depends(get_current_user),
    store: SQLIdentityStore = Depends(get_store),
):
    await change_password(
        store,
        user.id,
        new_password=text_field(body, "newPassword") or "",
        current_password=text_field(body, "currentPassword"),
    )
    return {"message": "Password updated successfully"}


@router.delete("/me")
async def delete_me(
    user: User = Depends(get_current_user),
    store: SQLIdentityStore = Depends(get_store),
):
    await delete_account(store, user.id)
    return {"message": "User account deleted successfully"}


__all__ = ["router"]
