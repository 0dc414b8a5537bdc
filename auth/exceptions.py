"""
auth/exceptions.py -- Error taxonomy raised by the authentication service.

Each exception carries a machine-readable code and the HTTP status the route
layer maps it to. api/main.py registers one handler for AuthError that turns
any of these into the standard error envelope.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all authentication service errors."""

    code = "auth_error"
    status_code = 400
    default_message = "Authentication error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AuthError):
    """Client input violates field constraints. fields maps field name -> messages."""

    code = "validation_error"
    status_code = 422
    default_message = "The given data was invalid."

    def __init__(self, fields: dict[str, list[str]], message: str | None = None) -> None:
        self.fields = fields
        super().__init__(message)


class InvalidCredentials(AuthError):
    """Login failed. Same message whether the email or the password was wrong."""

    code = "invalid_credentials"
    status_code = 401
    default_message = "The provided credentials are incorrect."

    def __init__(self) -> None:
        super().__init__()


class Unauthenticated(AuthError):
    """No valid, unrevoked token was presented."""

    code = "unauthenticated"
    status_code = 401
    default_message = "Unauthenticated."


class PersistenceFailed(AuthError):
    """Storage fault. The message is generic; the original error is chained."""

    code = "server_error"
    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self) -> None:
        super().__init__()
