from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    def __init__(self, message: str = "Invalid input data", *, errors: Optional[list[dict]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class InvalidStateError(DomainError):
    """Raised when a request conflicts with the current state (e.g. enrollment rules)."""


class DuplicateKeyError(InvalidStateError):
    """Raised by repositories when a unique key rejects a write."""


class AuthenticationError(DomainError):
    """Raised when credentials or bearer tokens are missing or invalid."""

    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    status_code = 404
