"""Database model exports."""

from .oauth import AuthProvider, OAuthAccount, OAuthIdentity
from .user import User

__all__ = [
    "AuthProvider",
    "OAuthAccount",
    "OAuthIdentity",
    "User",
]
