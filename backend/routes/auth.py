"""Registration, login, logout and session identity endpoints."""

from fastapi import APIRouter, Response

from character_chat.auth import COOKIE_NAME, TokenService
from character_chat.config import Settings
from character_chat.errors import AuthRequired
from character_chat.models import User

from backend.deps import AppSettings, CurrentUser, Tokens, Users
from .models import LoginBody, RegisterBody

router = APIRouter(prefix="/auth")


def _start_session(response: Response, user: User, tokens: TokenService, settings: Settings) -> None:
    token = tokens.issue(user.id, user.email, user.username)
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=tokens.max_age,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.cookie_secure,
    )


@router.post("/register", status_code=201)
async def register(
    body: RegisterBody, response: Response,
    users: Users, tokens: Tokens, settings: AppSettings,
):
    """Create an account and start a session."""
    user = users.register(body.email, body.username, body.password)
    _start_session(response, user, tokens, settings)
    return {"message": "User registered successfully", "user": user.public().to_json()}


@router.post("/login")
async def login(
    body: LoginBody, response: Response,
    users: Users, tokens: Tokens, settings: AppSettings,
):
    """Check credentials and start a session."""
    user = users.authenticate(body.email, body.password)
    _start_session(response, user, tokens, settings)
    return {"message": "Login successful", "user": user.public().to_json()}


@router.post("/logout")
async def logout(response: Response, settings: AppSettings):
    """End the session by clearing the cookie."""
    response.delete_cookie(
        COOKIE_NAME, path="/", httponly=True, samesite="strict", secure=settings.cookie_secure,
    )
    return {"ok": True}


@router.get("/me")
async def me(claims: CurrentUser, users: Users):
    """The signed-in user, without the password hash."""
    user = users.get(claims.user_id)
    if user is None:
        raise AuthRequired("User not found")
    return user.public().to_json()
