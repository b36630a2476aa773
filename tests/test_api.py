"""Test suite for the chat relay endpoint."""

import httpx
import pytest

from conftest import FakeCompletionClient, bearer
from edskill_chat.api.app import CORS_HEADERS, app, get_completion_client, get_repository
from edskill_chat.config import Settings
from edskill_chat.domain.errors import UpstreamServiceError
from edskill_chat.domain.models import Conversation
from edskill_chat.repositories.supabase import SupabaseRepository
from edskill_chat.services.prompts import SYSTEM_PROMPTS


def chat_body(conversation_id: str = "c1", category: str = "Entrepreneurship") -> dict:
    return {
        "conversationId": conversation_id,
        "message": "How do I start freelancing?",
        "categoryName": category,
    }


async def open_conversation(repository, conversation_id: str = "c1") -> None:
    category = (await repository.list_categories())[1]
    await repository.create_conversation(
        Conversation(
            id=conversation_id,
            user_id="user-1",
            category_id=category.id,
            title="Entrepreneurship - 2026-10-19",
        )
    )


def assert_cors(response) -> None:
    for name, value in CORS_HEADERS.items():
        assert response.headers[name] == value


@pytest.mark.asyncio
async def test_chat_turn_is_relayed_and_logged(api, auth_service, completions, repository):
    """Test a full successful chat turn."""
    await open_conversation(repository)

    async with api() as client:
        response = await client.post("/chat-ai", json=chat_body(), headers=bearer())

    assert response.status_code == 200
    assert response.json() == {"message": "Start by defining your niche..."}
    assert response.headers["content-type"].startswith("application/json")
    assert_cors(response)

    assert auth_service.calls == ["valid-token"]
    assert completions.calls == [
        (SYSTEM_PROMPTS["Entrepreneurship"], "How do I start freelancing?")
    ]

    messages = await repository.get_messages("c1")
    assert [(m.role, m.content) for m in messages] == [
        ("user", "How do I start freelancing?"),
        ("assistant", "Start by defining your niche..."),
    ]
    assert len(repository.inserted) == 1
    assert repository.bound_tokens == ["valid-token"]


@pytest.mark.asyncio
async def test_unknown_category_uses_custom_advice_prompt(api, completions, repository):
    """Test fallback to the default prompt."""
    await open_conversation(repository)

    async with api() as client:
        response = await client.post(
            "/chat-ai", json=chat_body(category="Unknown Category"), headers=bearer()
        )

    assert response.status_code == 200
    assert completions.calls[0][0] == SYSTEM_PROMPTS["Custom Advice"]


@pytest.mark.asyncio
async def test_missing_category_uses_custom_advice_prompt(api, completions, repository):
    await open_conversation(repository)
    body = chat_body()
    del body["categoryName"]

    async with api() as client:
        response = await client.post("/chat-ai", json=body, headers=bearer())

    assert response.status_code == 200
    assert completions.calls[0][0] == SYSTEM_PROMPTS["Custom Advice"]


@pytest.mark.asyncio
async def test_missing_authorization(api, auth_service, completions, repository):
    """Test that unauthenticated calls never reach a collaborator."""
    async with api() as client:
        response = await client.post("/chat-ai", json=chat_body())

    assert response.status_code == 401
    assert response.json() == {"error": "Authorization required"}
    assert_cors(response)
    assert auth_service.calls == []
    assert completions.calls == []
    assert repository.inserted == []


@pytest.mark.asyncio
async def test_missing_authorization_wins_over_bad_body(api, completions):
    async with api() as client:
        response = await client.post("/chat-ai", content=b"not json")

    assert response.status_code == 401
    assert completions.calls == []


@pytest.mark.asyncio
async def test_invalid_token(api, completions, repository):
    """Test a token the auth provider rejects."""
    await open_conversation(repository)

    async with api() as client:
        response = await client.post(
            "/chat-ai", json=chat_body(), headers=bearer("forged-token")
        )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid token"}
    assert completions.calls == []
    assert repository.inserted == []
    assert await repository.get_messages("c1") == []


@pytest.mark.asyncio
async def test_upstream_failure_skips_persistence(api, repository):
    """Test that a failed completion aborts before storage."""
    await open_conversation(repository)
    failing = FakeCompletionClient(error=UpstreamServiceError(429, "quota exceeded"))
    app.dependency_overrides[get_completion_client] = lambda: failing

    async with api() as client:
        response = await client.post("/chat-ai", json=chat_body(), headers=bearer())

    assert response.status_code == 500
    assert response.json() == {"error": "AI service error: quota exceeded"}
    assert_cors(response)
    assert len(failing.calls) == 1
    assert repository.inserted == []
    assert await repository.get_messages("c1") == []


@pytest.mark.asyncio
async def test_storage_failure_still_returns_reply(api, repository):
    """Test that message log failures are not surfaced."""
    repository.fail_inserts = True

    async with api() as client:
        response = await client.post("/chat-ai", json=chat_body(), headers=bearer())

    assert response.status_code == 200
    assert response.json() == {"message": "Start by defining your niche..."}


@pytest.mark.asyncio
async def test_undecodable_storage_response_still_returns_reply(api):
    """Test that a gateway page in place of the REST reply is not surfaced."""
    settings = Settings(SUPABASE_URL="https://project.supabase.co", SUPABASE_ANON_KEY="anon-key")
    gateway = httpx.AsyncClient(
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, text="<html>gateway</html>")
        )
    )
    app.dependency_overrides[get_repository] = lambda: SupabaseRepository(settings, gateway)

    async with api() as client:
        response = await client.post("/chat-ai", json=chat_body(), headers=bearer())
    await gateway.aclose()

    assert response.status_code == 200
    assert response.json() == {"message": "Start by defining your niche..."}


@pytest.mark.asyncio
async def test_unknown_conversation_still_returns_reply(api, repository):
    """Test that the relay trusts the supplied conversation ID."""
    async with api() as client:
        response = await client.post(
            "/chat-ai", json=chat_body(conversation_id="missing"), headers=bearer()
        )

    assert response.status_code == 200
    assert await repository.get_messages("missing") == []


@pytest.mark.asyncio
async def test_unexpected_failure(api, completions):
    """Test that an unparseable body after authentication is a 500."""
    async with api() as client:
        response = await client.post(
            "/chat-ai",
            content=b"{not json",
            headers={**bearer(), "Content-Type": "application/json"},
        )

    assert response.status_code == 500
    assert "error" in response.json()
    assert_cors(response)
    assert completions.calls == []


@pytest.mark.asyncio
async def test_unexpected_completion_fault(api, repository):
    broken = FakeCompletionClient(error=RuntimeError("connection reset"))
    app.dependency_overrides[get_completion_client] = lambda: broken

    async with api() as client:
        response = await client.post("/chat-ai", json=chat_body(), headers=bearer())

    assert response.status_code == 500
    assert response.json() == {"error": "connection reset"}
    assert repository.inserted == []


@pytest.mark.asyncio
async def test_preflight(api, auth_service, completions, repository):
    """Test CORS pre-flight handling."""
    async with api() as client:
        response = await client.options("/chat-ai")

    assert response.status_code == 200
    assert response.content == b""
    assert_cors(response)
    assert auth_service.calls == []
    assert completions.calls == []
    assert repository.inserted == []


@pytest.mark.asyncio
async def test_metrics_endpoint(api, repository):
    await open_conversation(repository)

    async with api() as client:
        await client.post("/chat-ai", json=chat_body(), headers=bearer())
        response = await client.get("/metrics")

    assert response.status_code == 200
    assert "chat_requests_total" in response.text


@pytest.mark.asyncio
async def test_wrong_method_is_encoded_as_error(api):
    async with api() as client:
        response = await client.get("/chat-ai", headers=bearer())

    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}
    assert "POST" in response.headers["allow"]
    assert_cors(response)


@pytest.mark.asyncio
async def test_unknown_path_is_encoded_as_error(api):
    async with api() as client:
        response = await client.post("/chat", json=chat_body(), headers=bearer())

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}
    assert_cors(response)
