"""Service layer helpers."""

from .accounts import (
    authenticate,
    change_password,
    delete_account,
    link_to_dict,
    register_user,
    update_profile,
    user_to_dict,
)
from .identity import IdentityResolver, normalize_email
from .store import DuplicateRecordError, IdentityStore, SQLIdentityStore
from .tokens import create_access_token, decode_access_token
from .verifiers import (
    CredentialVerifier,
    FacebookVerifier,
    GoogleVerifier,
    default_verifiers,
)

__all__ = [
    "CredentialVerifier",
    "DuplicateRecordError",
    "FacebookVerifier",
    "GoogleVerifier",
    "IdentityResolver",
    "IdentityStore",
    "SQLIdentityStore",
    "authenticate",
    "change_password",
    "create_access_token",
    "decode_access_token",
    "default_verifiers",
    "delete_account",
    "link_to_dict",
    "normalize_email",
    "register_user",
    "update_profile",
    "user_to_dict",
]
