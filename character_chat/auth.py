"""Password hashing, session tokens and registration rules.

Passwords are hashed with bcrypt (cost 12 by default). Sessions are HS256
JWTs carrying `userId`, `email` and `username`, valid for 7 days. The token
travels in the `auth-token` cookie; an `Authorization: Bearer` header is
accepted as a fallback so API clients share the same verification path.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from pydantic import BaseModel

from character_chat.errors import InvalidToken, TokenExpired, ValidationError

logger = logging.getLogger(__name__)

COOKIE_NAME = "auth-token"
TOKEN_TTL = timedelta(days=7)
DEFAULT_BCRYPT_ROUNDS = 12
JWT_ALGORITHM = "HS256"

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")
USERNAME_MIN, USERNAME_MAX = 3, 20
PASSWORD_MIN, PASSWORD_MAX = 8, 100

# bcrypt only looks at the first 72 bytes; newer releases refuse longer input.
_BCRYPT_MAX_BYTES = 72


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Hash a password with a fresh bcrypt salt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

class TokenClaims(BaseModel):
    user_id: str
    email: str
    username: str


class TokenService:
    """Issues and verifies signed session tokens.

    Args:
        secret:     HMAC signing key. Must be non-empty.
        expires_in: Token lifetime. Defaults to 7 days.
    """

    def __init__(self, secret: str, expires_in: timedelta = TOKEN_TTL) -> None:
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self._expires_in = expires_in

    @property
    def max_age(self) -> int:
        return int(self._expires_in.total_seconds())

    def issue(self, user_id: str, email: str, username: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "userId": user_id,
            "email": email,
            "username": username,
            "iat": now,
            "exp": now + self._expires_in,
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """Decode a token. Raises TokenExpired or InvalidToken."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "userId", "email", "username"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired() from e
        except jwt.InvalidTokenError as e:
            raise InvalidToken() from e
        return TokenClaims(
            user_id=payload["userId"],
            email=payload["email"],
            username=payload["username"],
        )


def extract_token(cookie_value: str | None, authorization: str | None) -> str | None:
    """Pick the session token: cookie first, then a Bearer header."""
    if cookie_value:
        return cookie_value
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):].strip()
        return token or None
    return None


# ---------------------------------------------------------------------------
# Registration rules
# ---------------------------------------------------------------------------

def validate_registration(email: str, username: str, password: str) -> None:
    """Raise ValidationError listing every field problem at once."""
    details: list[dict[str, str]] = []

    def fail(field: str, message: str) -> None:
        details.append({"field": field, "message": message})

    if not EMAIL_RE.match(email):
        fail("email", "Invalid email address")

    if len(username) < USERNAME_MIN:
        fail("username", f"Username must be at least {USERNAME_MIN} characters long")
    elif len(username) > USERNAME_MAX:
        fail("username", f"Username must be no more than {USERNAME_MAX} characters long")
    if username and not USERNAME_RE.match(username):
        fail("username", "Username can only contain letters, numbers, underscores, and hyphens")

    if len(password) < PASSWORD_MIN:
        fail("password", f"Password must be at least {PASSWORD_MIN} characters long")
    elif len(password) > PASSWORD_MAX:
        fail("password", f"Password must be no more than {PASSWORD_MAX} characters long")
    if not re.search(r"[A-Z]", password):
        fail("password", "Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        fail("password", "Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        fail("password", "Password must contain at least one number")

    if details:
        raise ValidationError(details=details)
