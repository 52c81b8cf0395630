"""Error taxonomy shared by the core and the HTTP layer.

Every domain error carries the HTTP status it maps to. The route layer never
inspects messages. It installs one exception handler for ChatAppError and
renders `{"error": message}` (plus `details` for validation errors).

    ValidationError     400  malformed input, field-level details
    UserExists          400  duplicate email or username
    AuthRequired        401  no session token
    InvalidToken        401  token present but unverifiable
    TokenExpired        401  token signature fine, expiry passed
    InvalidCredentials  401  wrong email/password at login
    AccessDenied        403  visible record, wrong owner
    NotFound            404  missing or hidden record
    UpstreamError       500  completion endpoint failed (no detail exposed)
"""

from __future__ import annotations


class ChatAppError(Exception):
    """Base for all errors the route layer translates into HTTP responses."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# 400
# ---------------------------------------------------------------------------

class ValidationError(ChatAppError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(
        self,
        message: str | None = None,
        details: list[dict[str, str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or []


class UserExists(ChatAppError):
    status_code = 400
    default_message = "User with this email or username already exists"


# ---------------------------------------------------------------------------
# 401
# ---------------------------------------------------------------------------

class AuthRequired(ChatAppError):
    status_code = 401
    default_message = "Authentication required"


class InvalidToken(AuthRequired):
    default_message = "Invalid token"


class TokenExpired(AuthRequired):
    default_message = "Session expired, please log in again"


class InvalidCredentials(AuthRequired):
    default_message = "Invalid email or password"


# ---------------------------------------------------------------------------
# 403 / 404
# ---------------------------------------------------------------------------

class AccessDenied(ChatAppError):
    status_code = 403
    default_message = "Access denied"


class NotFound(ChatAppError):
    status_code = 404
    default_message = "Not found"


class UserNotFound(NotFound):
    default_message = "User not found"


class CharacterNotFound(NotFound):
    default_message = "Character not found"


class ChatNotFound(NotFound):
    default_message = "Chat not found"


# ---------------------------------------------------------------------------
# 500
# ---------------------------------------------------------------------------

class UpstreamError(ChatAppError):
    """The completion endpoint failed. The cause is logged, never returned."""

    status_code = 500


class ConfigError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""
