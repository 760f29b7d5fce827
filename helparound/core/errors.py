"""Domain error taxonomy.

Every error raised towards callers carries a message and the HTTP status the
API layer should answer with. Store-level uniqueness violations are kept
separate (see ``services.store.DuplicateRecordError``) because only the
identity resolver is allowed to reinterpret them.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = 400


class AuthError(AppError):
    """Invalid credentials, provider token, or session token."""

    status_code = 401


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """The resource already exists (duplicate email, identity already linked)."""

    status_code = 409


class InvariantViolation(AppError):
    """The operation would leave an account without any way to log in."""

    status_code = 400


__all__ = [
    "AppError",
    "AuthError",
    "ConflictError",
    "InvariantViolation",
    "NotFoundError",
    "ValidationError",
]
