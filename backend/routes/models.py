"""Pydantic request/response models for API endpoints.

Request bodies use the camelCase field names clients send (`systemPrompt`,
`isPublic`, `characterId`, `chatId`); attributes are snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_avatar(value: str | None) -> str | None:
    if value and not value.startswith(("http://", "https://")):
        raise ValueError("Invalid avatar URL")
    return value


class RegisterBody(Body):
    email: str
    username: str
    password: str


class LoginBody(Body):
    email: str
    password: str = Field(min_length=1)


class CreateCharacter(Body):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    system_prompt: str = Field(min_length=1, max_length=2000)
    is_public: bool = True
    avatar: str | None = None

    @field_validator("avatar")
    @classmethod
    def check_avatar(cls, value: str | None) -> str | None:
        return _check_avatar(value)


class UpdateCharacter(Body):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=500)
    system_prompt: str | None = Field(default=None, min_length=1, max_length=2000)
    is_public: bool | None = None
    avatar: str | None = None

    @field_validator("avatar")
    @classmethod
    def check_avatar(cls, value: str | None) -> str | None:
        return _check_avatar(value)


class ChatBody(Body):
    message: str = Field(min_length=1, max_length=1000)
    character_id: str = Field(min_length=1)
    chat_id: str | None = None
