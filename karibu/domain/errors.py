"""Failure kinds raised by the authentication core.

Each error carries the HTTP status code and a stable ``kind`` string used by the
API layer when rendering ``{"success": false, "error": kind, "message": ...}``.
"""

from __future__ import annotations

from typing import Optional


class AuthError(Exception):
    status_code: int = 400
    kind: str = "validation_error"
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    status_code = 400
    kind = "validation_error"
    default_message = "Invalid input"


class DuplicateEmail(AuthError):
    status_code = 400
    kind = "duplicate_email"
    default_message = "User already exists with this email"


class InvalidCredentials(AuthError):
    status_code = 401
    kind = "invalid_credentials"
    default_message = "Invalid credentials"


class AccountLocked(AuthError):
    status_code = 423
    kind = "account_locked"
    default_message = (
        "Account is temporarily locked due to too many failed login attempts. "
        "Please try again later."
    )


class IncorrectPassword(AuthError):
    status_code = 401
    kind = "incorrect_password"
    default_message = "Password is incorrect"


class InvalidOrExpiredToken(AuthError):
    status_code = 400
    kind = "invalid_or_expired_token"
    default_message = "Invalid or expired token"


class EmailDeliveryFailed(AuthError):
    status_code = 500
    kind = "email_delivery_failed"
    default_message = "Email could not be sent"


class NotFound(AuthError):
    status_code = 404
    kind = "not_found"
    default_message = "Resource not found"


class Forbidden(AuthError):
    status_code = 403
    kind = "forbidden"
    default_message = "Not authorized to access this route"


class MissingToken(AuthError):
    status_code = 401
    kind = "missing_token"
    default_message = "Token is required"


class InvalidToken(AuthError):
    status_code = 401
    kind = "invalid_token"
    default_message = "Invalid token"


class Unexpected(AuthError):
    status_code = 500
    kind = "unexpected"
    default_message = "Something went wrong"


class DeliveryError(Exception):
    """Raised by notifier implementations when a message could not be handed off."""
