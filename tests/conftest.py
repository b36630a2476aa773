"""Shared fakes and dependency overrides for the API tests."""

from typing import Dict, List, Optional, Tuple

import pytest
from httpx import ASGITransport, AsyncClient

from edskill_chat.api.app import (
    app,
    get_auth_service,
    get_completion_client,
    get_repository,
)
from edskill_chat.domain.errors import InvalidToken, StorageError
from edskill_chat.domain.models import NewMessage, UserIdentity
from edskill_chat.repositories.memory import InMemoryRepository

VALID_TOKEN = "valid-token"
OTHER_TOKEN = "other-token"


class FakeAuthService:
    """Accepts a fixed set of tokens."""

    def __init__(self, users: Optional[Dict[str, UserIdentity]] = None):
        self.users = users if users is not None else {
            VALID_TOKEN: UserIdentity(id="user-1", email="amina@example.com"),
            OTHER_TOKEN: UserIdentity(id="user-2"),
        }
        self.calls: List[str] = []

    async def verify(self, token: str) -> UserIdentity:
        self.calls.append(token)
        user = self.users.get(token)
        if user is None:
            raise InvalidToken()
        return user


class FakeCompletionClient:
    """Returns a canned reply or raises a canned error."""

    def __init__(self, reply: str = "Start by defining your niche...", error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_message: str) -> str:
        self.calls.append((system_prompt, user_message))
        if self.error is not None:
            raise self.error
        return self.reply


class RecordingRepository(InMemoryRepository):
    """In-memory repository that records batches and can be told to fail."""

    def __init__(self, fail_inserts: bool = False):
        super().__init__()
        self.fail_inserts = fail_inserts
        self.bound_tokens: List[str] = []
        self.inserted: List[List[NewMessage]] = []

    def bind(self, access_token: str) -> "RecordingRepository":
        self.bound_tokens.append(access_token)
        return self

    async def insert_messages(self, messages: List[NewMessage]) -> None:
        if self.fail_inserts:
            raise StorageError("insert failed")
        await super().insert_messages(messages)
        self.inserted.append(list(messages))


@pytest.fixture
def auth_service() -> FakeAuthService:
    return FakeAuthService()


@pytest.fixture
def completions() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def repository() -> RecordingRepository:
    return RecordingRepository()


@pytest.fixture
def api(auth_service, completions, repository):
    """Installs the fakes on the app and returns a client factory."""
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_completion_client] = lambda: completions
    app.dependency_overrides[get_repository] = lambda: repository

    def make_client() -> AsyncClient:
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    yield make_client
    app.dependency_overrides.clear()


def bearer(token: str = VALID_TOKEN) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
