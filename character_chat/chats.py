"""Chat sessions and their message logs over the `chats` collection.

The repository trusts its caller: ownership is checked by the orchestrator
and the route layer (see `get_for_user`), not on every method.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from character_chat.errors import ChatNotFound
from character_chat.models import Character, Chat, ChatSummary, Message, Role, utcnow
from character_chat.store import RecordStore

logger = logging.getLogger(__name__)

COLLECTION = "chats"

_TICK = timedelta(microseconds=1)


def _next_timestamp(previous: datetime) -> datetime:
    """Current time, nudged forward so it is strictly after `previous`."""
    now = utcnow()
    return now if now > previous else previous + _TICK


def composite_chat_id(user_id: str, character_id: str) -> str:
    """Deterministic chat id for a user's default chat with a character."""
    return f"{user_id}-{character_id}"


class ChatRepository:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def _load(self) -> list[Chat]:
        return [Chat.model_validate(c) for c in self._store.load_all(COLLECTION)]

    def _save(self, chats: list[Chat]) -> None:
        self._store.save_all(COLLECTION, [c.to_json() for c in chats])

    def create(self, user_id: str, character_id: str, chat_id: str | None = None) -> Chat:
        chat = Chat(user_id=user_id, character_id=character_id)
        if chat_id:
            chat.id = chat_id
        chats = self._load()
        chats.append(chat)
        self._save(chats)
        logger.info("created chat id=%s user=%s character=%s", chat.id, user_id, character_id)
        return chat

    def get(self, chat_id: str) -> Chat | None:
        for chat in self._load():
            if chat.id == chat_id:
                return chat
        return None

    def get_for_user(self, chat_id: str, user_id: str) -> Chat:
        """Fetch a chat owned by `user_id`. Foreign chats look missing."""
        chat = self.get(chat_id)
        if chat is None or chat.user_id != user_id:
            raise ChatNotFound()
        return chat

    def list_by_user(self, user_id: str) -> list[Chat]:
        """A user's chats, most recently active first."""
        chats = [c for c in self._load() if c.user_id == user_id]
        chats.sort(key=lambda c: c.updated_at, reverse=True)
        return chats

    def append_message(self, chat_id: str, role: Role, content: str) -> Message:
        """Append one message, bump updated_at and persist. Returns the new message."""
        chats = self._load()
        for chat in chats:
            if chat.id == chat_id:
                break
        else:
            raise ChatNotFound()

        last = chat.messages[-1].timestamp if chat.messages else chat.updated_at
        stamp = _next_timestamp(max(last, chat.updated_at))
        message = Message(role=role, content=content, timestamp=stamp)
        chat.messages.append(message)
        chat.updated_at = stamp
        self._save(chats)
        return message

    def summaries(self, user_id: str, characters: dict[str, Character]) -> list[ChatSummary]:
        """Chat list rows for a user. `characters` maps id → Character."""
        rows = []
        for chat in self.list_by_user(user_id):
            character = characters.get(chat.character_id)
            last = chat.messages[-1] if chat.messages else None
            rows.append(ChatSummary(
                id=chat.id,
                character_id=chat.character_id,
                character_name=character.name if character else "Unknown character",
                character_avatar=character.avatar if character else "",
                last_message=last.content if last else "",
                last_message_time=last.timestamp if last else None,
                message_count=len(chat.messages),
            ))
        return rows
