"""Tests for character_chat.models."""

import pytest
from pydantic import ValidationError

from character_chat.models import Character, Chat, Message, User


class TestMessage:
    def test_required_fields(self) -> None:
        m = Message(role="user", content="hi")
        assert m.role == "user"
        assert m.content == "hi"
        assert m.id
        assert m.timestamp.tzinfo is not None

    def test_invalid_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Message(role="system", content="x")

    def test_ids_are_unique(self) -> None:
        assert Message(role="user", content="a").id != Message(role="user", content="a").id


class TestCharacter:
    def _character(self, **kw) -> Character:
        base = dict(name="Helper", description="Helps.", system_prompt="Be nice.", creator_id="u1")
        base.update(kw)
        return Character(**base)

    def test_defaults(self) -> None:
        c = self._character()
        assert c.is_public is True
        assert c.chat_count == 0
        assert c.avatar == ""

    def test_dump_uses_camel_case(self) -> None:
        dumped = self._character().to_json()
        assert dumped["systemPrompt"] == "Be nice."
        assert dumped["creatorId"] == "u1"
        assert dumped["isPublic"] is True
        assert dumped["chatCount"] == 0
        assert "system_prompt" not in dumped

    def test_accepts_camel_case_input(self) -> None:
        c = Character.model_validate({
            "name": "X", "description": "d", "systemPrompt": "p", "creatorId": "u2", "isPublic": False,
        })
        assert c.system_prompt == "p"
        assert c.is_public is False

    def test_public_visible_to_anyone(self) -> None:
        c = self._character(is_public=True)
        assert c.visible_to(None)
        assert c.visible_to("someone-else")

    def test_private_visible_only_to_creator(self) -> None:
        c = self._character(is_public=False)
        assert c.visible_to("u1")
        assert not c.visible_to("u2")
        assert not c.visible_to(None)

    def test_serialise_roundtrip(self) -> None:
        c = self._character(chat_count=3)
        assert Character.model_validate(c.to_json()) == c


class TestUser:
    def test_public_view_has_no_hash(self) -> None:
        u = User(email="a@x.com", username="alice", password_hash="$2b$secret")
        dumped = u.public().to_json()
        assert dumped["username"] == "alice"
        assert "passwordHash" not in dumped
        assert dumped["id"] == u.id


class TestChat:
    def test_messages_default_empty(self) -> None:
        chat = Chat(user_id="u1", character_id="c1")
        assert chat.messages == []

    def test_dump_embeds_messages(self) -> None:
        chat = Chat(user_id="u1", character_id="c1", messages=[Message(role="user", content="hi")])
        dumped = chat.to_json()
        assert dumped["userId"] == "u1"
        assert dumped["messages"][0]["content"] == "hi"
        assert Chat.model_validate(dumped) == chat
