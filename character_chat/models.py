"""Core domain models.

Repositories, the orchestrator and the route layer all operate on these
types. Pydantic handles validation and serialisation at every data boundary.
Attributes are snake_case in Python; persisted JSON and API payloads use
camelCase aliases (`systemPrompt`, `creatorId`, ...). Always dump with
`model_dump(by_alias=True)` when writing to the store or the wire.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Role = Literal["user", "assistant"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class User(Record):
    """A registered account. Never mutated after registration."""

    id: str = Field(default_factory=new_id)
    email: str
    username: str
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow)

    def public(self) -> PublicUser:
        return PublicUser(
            id=self.id, email=self.email,
            username=self.username, created_at=self.created_at,
        )


class PublicUser(Record):
    """User view safe to return to clients (no password hash)."""

    id: str
    email: str
    username: str
    created_at: datetime


class Character(Record):
    """An AI persona authored by a user."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str
    system_prompt: str
    creator_id: str
    is_public: bool = True
    avatar: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    chat_count: int = 0

    def visible_to(self, requester_id: str | None) -> bool:
        return self.is_public or (requester_id is not None and requester_id == self.creator_id)


class Message(Record):
    """A single turn in a chat. Immutable once appended."""

    id: str = Field(default_factory=new_id)
    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class Chat(Record):
    """A conversation between one user and one character."""

    id: str = Field(default_factory=new_id)
    user_id: str
    character_id: str
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ChatSummary(Record):
    """One row of a user's chat list."""

    id: str
    character_id: str
    character_name: str
    character_avatar: str
    last_message: str
    last_message_time: datetime | None
    message_count: int
