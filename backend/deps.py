"""FastAPI dependencies: repositories from app state and request identity."""

from typing import Annotated

from fastapi import Cookie, Depends, Header, Request

from character_chat.auth import COOKIE_NAME, TokenClaims, TokenService, extract_token
from character_chat.characters import CharacterRepository
from character_chat.chats import ChatRepository
from character_chat.config import Settings
from character_chat.errors import AuthRequired, ChatAppError
from character_chat.llm import LLM
from character_chat.users import UserRepository


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_users(request: Request) -> UserRepository:
    return request.app.state.users


def get_characters(request: Request) -> CharacterRepository:
    return request.app.state.characters


def get_chats(request: Request) -> ChatRepository:
    return request.app.state.chats


def get_llm(request: Request) -> LLM:
    return request.app.state.llm


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def _session_token(
    auth_token: Annotated[str | None, Cookie(alias=COOKIE_NAME)] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    return extract_token(auth_token, authorization)


def current_user(
    token: Annotated[str | None, Depends(_session_token)],
    tokens: Annotated[TokenService, Depends(get_tokens)],
) -> TokenClaims:
    """Identity of the caller. Raises AuthRequired / InvalidToken / TokenExpired."""
    if not token:
        raise AuthRequired()
    return tokens.verify(token)


def optional_user(
    token: Annotated[str | None, Depends(_session_token)],
    tokens: Annotated[TokenService, Depends(get_tokens)],
) -> TokenClaims | None:
    """Identity of the caller, or None for anonymous or unverifiable sessions."""
    if not token:
        return None
    try:
        return tokens.verify(token)
    except ChatAppError:
        return None


CurrentUser = Annotated[TokenClaims, Depends(current_user)]
OptionalUser = Annotated[TokenClaims | None, Depends(optional_user)]
Users = Annotated[UserRepository, Depends(get_users)]
Characters = Annotated[CharacterRepository, Depends(get_characters)]
Chats = Annotated[ChatRepository, Depends(get_chats)]
Tokens = Annotated[TokenService, Depends(get_tokens)]
AppSettings = Annotated[Settings, Depends(get_settings)]
LLMClient = Annotated[LLM, Depends(get_llm)]
