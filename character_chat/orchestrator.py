"""Chat orchestrator — runs one user turn end-to-end.

Turn flow:
  1. Resolve the character (visibility rule applies).
  2. Resolve the chat: the given chat id (must belong to the user and the
     character), or the user's default chat with this character, created on
     first use.
  3. Append and persist the user message.
  4. Build the context: system prompt + the most recent N messages.
  5. Call the LLM. Failures surface as UpstreamError with no retry.
  6. Append and persist the assistant reply (fallback text if empty).

A failure after step 3 leaves the user message stored without a reply.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from character_chat.characters import CharacterRepository
from character_chat.chats import ChatRepository, composite_chat_id
from character_chat.errors import ChatNotFound, UpstreamError
from character_chat.llm import LLM, ChatTurn, LLMError
from character_chat.models import Character, Chat, Message

logger = logging.getLogger(__name__)

CONTEXT_MESSAGES = 10
FALLBACK_REPLY = "I apologize, but I cannot respond right now."


@dataclass
class ChatTurnResult:
    message: Message
    chat_id: str


async def run_chat_turn(
    *,
    characters: CharacterRepository,
    chats: ChatRepository,
    llm: LLM,
    user_id: str,
    character_id: str,
    message: str,
    chat_id: str | None = None,
    context_limit: int = CONTEXT_MESSAGES,
) -> ChatTurnResult:
    """Execute one user turn and return the assistant reply."""

    # 1. Character
    character = characters.get(character_id, requester_id=user_id)

    # 2. Chat
    chat = _resolve_chat(characters, chats, user_id, character, chat_id)

    # 3. User message
    chats.append_message(chat.id, "user", message)

    # 4. Context
    stored = chats.get(chat.id)
    history = stored.messages if stored else []
    context = build_context(character, history, context_limit)

    # 5. LLM
    try:
        reply = await llm(context)
    except LLMError as e:
        logger.warning("completion failed chat=%s: %s", chat.id, e)
        raise UpstreamError() from e

    # 6. Assistant message
    if not reply or not reply.strip():
        logger.warning("completion returned no content chat=%s, using fallback", chat.id)
        reply = FALLBACK_REPLY
    assistant = chats.append_message(chat.id, "assistant", reply)

    return ChatTurnResult(message=assistant, chat_id=chat.id)


def _resolve_chat(
    characters: CharacterRepository,
    chats: ChatRepository,
    user_id: str,
    character: Character,
    chat_id: str | None,
) -> Chat:
    if chat_id:
        chat = chats.get_for_user(chat_id, user_id)
        if chat.character_id != character.id:
            raise ChatNotFound()
        return chat

    default_id = composite_chat_id(user_id, character.id)
    chat = chats.get(default_id)
    if chat is not None:
        if chat.user_id != user_id:
            raise ChatNotFound()
        return chat

    chat = chats.create(user_id, character.id, chat_id=default_id)
    characters.increment_chat_count(character.id)
    return chat


def build_context(
    character: Character, history: list[Message], limit: int = CONTEXT_MESSAGES
) -> list[ChatTurn]:
    """System prompt followed by the last `limit` messages, oldest first."""
    recent = history[-limit:] if limit > 0 else []
    return [
        {"role": "system", "content": character.system_prompt},
        *({"role": m.role, "content": m.content} for m in recent),
    ]
