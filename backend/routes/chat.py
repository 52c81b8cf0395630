"""Chat turn, history and chat-list endpoints."""

from fastapi import APIRouter, Query

from character_chat.errors import ValidationError
from character_chat.orchestrator import run_chat_turn

from backend.deps import AppSettings, Characters, Chats, CurrentUser, LLMClient
from .models import ChatBody

router = APIRouter()


@router.post("/chat")
async def chat(
    body: ChatBody,
    user: CurrentUser,
    characters: Characters,
    chats: Chats,
    llm: LLMClient,
    settings: AppSettings,
):
    """Send a user message to a character and return the reply."""
    result = await run_chat_turn(
        characters=characters,
        chats=chats,
        llm=llm,
        user_id=user.user_id,
        character_id=body.character_id,
        message=body.message,
        chat_id=body.chat_id,
        context_limit=settings.llm_context_messages,
    )
    return {"message": result.message.to_json(), "chatId": result.chat_id}


@router.get("/chat")
async def chat_history(
    user: CurrentUser,
    chats: Chats,
    chat_id: str | None = Query(None, alias="chatId"),
):
    """Message history of one of the caller's chats."""
    if not chat_id:
        raise ValidationError("Chat ID is required")
    chat = chats.get_for_user(chat_id, user.user_id)
    return {"messages": [m.to_json() for m in chat.messages]}


@router.get("/chats")
async def list_chats(user: CurrentUser, chats: Chats, characters: Characters):
    """The caller's chats, most recent first."""
    by_id = {c.id: c for c in characters.list_visible(requester_id=user.user_id, include_own=True)}
    return [s.to_json() for s in chats.summaries(user.user_id, by_id)]
