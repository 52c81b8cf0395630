import pytest
from fastapi.testclient import TestClient

from backend.app import create_app
from character_chat.characters import CharacterRepository
from character_chat.chats import ChatRepository
from character_chat.config import Settings
from character_chat.llm import LLMError
from character_chat.store import MemoryStore
from character_chat.users import UserRepository

TEST_SECRET = "test-secret-do-not-use-outside-the-suite"
# bcrypt's minimum cost; keeps the suite fast
TEST_ROUNDS = 4


class StubLLM:
    """Deterministic LLM stand-in for tests.

    Queue replies (strings) or failures (exceptions) in call order. Once the
    queue is empty every call returns `default`. All calls are recorded.
    """

    def __init__(self, responses: list | None = None, default: str = "Hello from the stub.") -> None:
        self._queue = list(responses or [])
        self.default = default
        self.calls: list[list[dict[str, str]]] = []

    def queue(self, *responses) -> None:
        self._queue.extend(responses)

    def fail_next(self, message: str = "backend down") -> None:
        self._queue.append(LLMError(message))

    async def __call__(self, messages: list[dict[str, str]]) -> str:
        self.calls.append([dict(m) for m in messages])
        if not self._queue:
            return self.default
        item = self._queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def users(store: MemoryStore) -> UserRepository:
    return UserRepository(store, bcrypt_rounds=TEST_ROUNDS)


@pytest.fixture
def characters(store: MemoryStore) -> CharacterRepository:
    return CharacterRepository(store)


@pytest.fixture
def chats(store: MemoryStore) -> ChatRepository:
    return ChatRepository(store)


@pytest.fixture
def stub_llm() -> StubLLM:
    return StubLLM()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings.model_validate(dict(
        jwt_secret=TEST_SECRET,
        data_dir=tmp_path,
        llm_provider="echo",
        bcrypt_rounds=TEST_ROUNDS,
    ))


@pytest.fixture
def app(settings: Settings, store: MemoryStore, stub_llm: StubLLM):
    return create_app(settings, store=store, llm=stub_llm)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_client(app):
    """Factory for extra clients with their own cookie jars (one per user)."""
    def _make() -> TestClient:
        return TestClient(app)
    return _make
