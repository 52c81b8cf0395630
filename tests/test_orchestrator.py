"""Chat orchestrator tests — one user turn end-to-end against a StubLLM."""

import httpx
import pytest
from unittest.mock import AsyncMock, patch

from character_chat.errors import CharacterNotFound, ChatNotFound, UpstreamError
from character_chat.llm import HttpLLM
from character_chat.orchestrator import FALLBACK_REPLY, build_context, run_chat_turn

from conftest import StubLLM

HELPER_PROMPT = "You are Helper, a patient assistant."


@pytest.fixture
def helper(characters):
    return characters.create(
        creator_id="alice", name="Helper", description="Helps out.",
        system_prompt=HELPER_PROMPT, is_public=True,
    )


async def _turn(characters, chats, llm, message, character_id, user_id="bob", chat_id=None, **kw):
    return await run_chat_turn(
        characters=characters, chats=chats, llm=llm,
        user_id=user_id, character_id=character_id,
        message=message, chat_id=chat_id, **kw,
    )


async def test_first_turn_creates_chat(characters, chats, helper):
    llm = StubLLM(["Hi Bob!"])
    result = await _turn(characters, chats, llm, "hi", helper.id)

    assert result.chat_id == f"bob-{helper.id}"
    assert result.message.role == "assistant"
    assert result.message.content == "Hi Bob!"
    chat = chats.get(result.chat_id)
    assert chat.user_id == "bob"
    assert [(m.role, m.content) for m in chat.messages] == [("user", "hi"), ("assistant", "Hi Bob!")]
    assert chat.messages[-1].id == result.message.id


async def test_new_chat_increments_chat_count_once(characters, chats, helper):
    llm = StubLLM()
    first = await _turn(characters, chats, llm, "hi", helper.id)
    await _turn(characters, chats, llm, "again", helper.id)
    await _turn(characters, chats, llm, "and again", helper.id, chat_id=first.chat_id)
    assert characters.get(helper.id).chat_count == 1

    await _turn(characters, chats, llm, "hi", helper.id, user_id="carol")
    assert characters.get(helper.id).chat_count == 2


async def test_context_starts_with_system_prompt(characters, chats, helper):
    llm = StubLLM()
    await _turn(characters, chats, llm, "hi", helper.id)
    sent = llm.calls[0]
    assert sent[0] == {"role": "system", "content": HELPER_PROMPT}
    assert sent[1:] == [{"role": "user", "content": "hi"}]


async def test_n_turns_make_n_ordered_pairs(characters, chats, helper):
    llm = StubLLM([f"reply {i}" for i in range(6)])
    stamps = []
    chat_id = None
    for i in range(6):
        result = await _turn(characters, chats, llm, f"msg {i}", helper.id, chat_id=chat_id)
        chat_id = result.chat_id
        stamps.append(chats.get(chat_id).updated_at)

    messages = chats.get(chat_id).messages
    assert len(messages) == 12
    for i in range(6):
        assert (messages[2 * i].role, messages[2 * i].content) == ("user", f"msg {i}")
        assert (messages[2 * i + 1].role, messages[2 * i + 1].content) == ("assistant", f"reply {i}")
    assert all(a < b for a, b in zip(stamps, stamps[1:]))


async def test_context_capped_at_ten_messages(characters, chats, helper):
    llm = StubLLM()
    for i in range(15):
        await _turn(characters, chats, llm, f"msg {i}", helper.id)

    for sent in llm.calls:
        assert sent[0]["role"] == "system"
        assert len(sent) <= 11

    last = llm.calls[-1]
    assert len(last) == 11
    # newest ten, oldest first, ending with the message just sent
    assert last[-1] == {"role": "user", "content": "msg 14"}
    assert last[1] == {"role": "assistant", "content": llm.default}
    assert [t["content"] for t in last[2::2]] == [f"msg {i}" for i in range(10, 15)]


async def test_custom_context_limit(characters, chats, helper):
    llm = StubLLM()
    for i in range(4):
        await _turn(characters, chats, llm, f"msg {i}", helper.id, context_limit=2)
    assert len(llm.calls[-1]) == 3


async def test_upstream_failure_keeps_user_message(characters, chats, helper):
    llm = StubLLM()
    llm.fail_next()
    with pytest.raises(UpstreamError):
        await _turn(characters, chats, llm, "hello?", helper.id)

    chat = chats.get(f"bob-{helper.id}")
    assert [(m.role, m.content) for m in chat.messages] == [("user", "hello?")]


@pytest.mark.parametrize("exc", [
    httpx.ReadError("connection reset"),
    httpx.RemoteProtocolError("peer closed connection"),
])
async def test_http_transport_failure_is_upstream_error(characters, chats, helper, exc):
    llm = HttpLLM(base_url="http://llm.local/v1")
    with patch("httpx.AsyncClient.post", AsyncMock(side_effect=exc)):
        with pytest.raises(UpstreamError):
            await _turn(characters, chats, llm, "hello?", helper.id)

    chat = chats.get(f"bob-{helper.id}")
    assert [(m.role, m.content) for m in chat.messages] == [("user", "hello?")]


async def test_empty_reply_uses_fallback(characters, chats, helper):
    llm = StubLLM(["   "])
    result = await _turn(characters, chats, llm, "hi", helper.id)
    assert result.message.content == FALLBACK_REPLY
    assert chats.get(result.chat_id).messages[-1].content == FALLBACK_REPLY


async def test_unknown_character(characters, chats):
    llm = StubLLM()
    with pytest.raises(CharacterNotFound):
        await _turn(characters, chats, llm, "hi", "nope")
    assert llm.calls == []


async def test_private_character_of_other_user(characters, chats):
    secret = characters.create(
        creator_id="alice", name="Secret", description="d",
        system_prompt="p", is_public=False,
    )
    llm = StubLLM()
    with pytest.raises(CharacterNotFound):
        await _turn(characters, chats, llm, "hi", secret.id, user_id="bob")
    result = await _turn(characters, chats, llm, "hi", secret.id, user_id="alice")
    assert result.chat_id == f"alice-{secret.id}"


async def test_explicit_chat_id_must_exist(characters, chats, helper):
    with pytest.raises(ChatNotFound):
        await _turn(characters, chats, StubLLM(), "hi", helper.id, chat_id="missing")
    assert chats.get("missing") is None


async def test_explicit_chat_id_of_other_user(characters, chats, helper):
    llm = StubLLM()
    alices = await _turn(characters, chats, llm, "hi", helper.id, user_id="alice")
    with pytest.raises(ChatNotFound):
        await _turn(characters, chats, llm, "sneaky", helper.id, user_id="bob", chat_id=alices.chat_id)
    assert [m.content for m in chats.get(alices.chat_id).messages if m.role == "user"] == ["hi"]


async def test_explicit_chat_id_for_other_character(characters, chats, helper):
    other = characters.create(
        creator_id="alice", name="Other", description="d", system_prompt="p",
    )
    llm = StubLLM()
    first = await _turn(characters, chats, llm, "hi", helper.id)
    with pytest.raises(ChatNotFound):
        await _turn(characters, chats, llm, "hi", other.id, chat_id=first.chat_id)


async def test_explicit_non_composite_chat_id(characters, chats, helper):
    chat = chats.create("bob", helper.id)
    result = await _turn(characters, chats, StubLLM(["yo"]), "hi", helper.id, chat_id=chat.id)
    assert result.chat_id == chat.id
    assert len(chats.get(chat.id).messages) == 2


def test_build_context_short_history(helper):
    from character_chat.models import Message
    history = [Message(role="user", content="a"), Message(role="assistant", content="b")]
    assert build_context(helper, history) == [
        {"role": "system", "content": HELPER_PROMPT},
        {"role": "user", "content": "a"},
        {"role": "assistant", "content": "b"},
    ]
