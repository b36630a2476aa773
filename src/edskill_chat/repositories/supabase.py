"""Supabase (PostgREST) repository implementation."""

from typing import Any, Dict, List, Optional

import httpx
import structlog

from ..config import Settings
from ..domain.errors import StorageError
from ..domain.models import Category, Conversation, Message, NewMessage
from .base import Repository

logger = structlog.get_logger()

CATEGORIES_TABLE = "advice_categories"
CONVERSATIONS_TABLE = "conversations"
MESSAGES_TABLE = "messages"


class SupabaseRepository(Repository):
    """Talks to the project's REST endpoint; row-level security applies
    to whichever caller token the repository is bound to."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        access_token: Optional[str] = None,
    ) -> None:
        self.settings = settings
        self.rest_url = f"{settings.SUPABASE_URL.rstrip('/')}/rest/v1"
        self.anon_key = settings.SUPABASE_ANON_KEY
        self.client = client
        self.access_token = access_token

    def bind(self, access_token: str) -> "SupabaseRepository":
        return SupabaseRepository(self.settings, self.client, access_token=access_token)

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        try:
            response = await self.client.request(
                method,
                f"{self.rest_url}/{table}",
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise StorageError(f"{table}: {e}") from e

        if not response.is_success:
            logger.error(
                "storage_request_failed",
                table=table,
                method=method,
                status_code=response.status_code,
                body=response.text,
            )
            raise StorageError(f"{table}: {response.status_code} {response.text}")

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error("storage_response_undecodable", table=table, method=method)
            raise StorageError(f"{table}: undecodable response body") from e

    async def insert_messages(self, messages: List[NewMessage]) -> None:
        await self._request(
            "POST",
            MESSAGES_TABLE,
            json=[m.model_dump() for m in messages],
            prefer="return=minimal",
        )

    async def list_categories(self) -> List[Category]:
        rows = await self._request(
            "GET", CATEGORIES_TABLE, params={"select": "*", "order": "created_at.asc"}
        )
        return [Category.model_validate(row) for row in rows or []]

    async def get_category(self, category_id: str) -> Optional[Category]:
        rows = await self._request(
            "GET", CATEGORIES_TABLE, params={"select": "*", "id": f"eq.{category_id}"}
        )
        return Category.model_validate(rows[0]) if rows else None

    async def create_conversation(self, conversation: Conversation) -> Conversation:
        rows = await self._request(
            "POST",
            CONVERSATIONS_TABLE,
            json={
                "user_id": conversation.user_id,
                "category_id": conversation.category_id,
                "title": conversation.title,
            },
            prefer="return=representation",
        )
        if not rows:
            raise StorageError(f"{CONVERSATIONS_TABLE}: insert returned no row")
        return Conversation.model_validate(rows[0])

    async def get_messages(self, conversation_id: str, user_id: Optional[str] = None) -> List[Message]:
        # Row-level security on the bound token limits reads to the owner.
        rows = await self._request(
            "GET",
            MESSAGES_TABLE,
            params={
                "select": "*",
                "conversation_id": f"eq.{conversation_id}",
                "order": "created_at.asc",
            },
        )
        return [Message.model_validate(row) for row in rows or []]

    async def rate_message(self, message_id: str, user_id: str, rating: int) -> Optional[Message]:
        # Ownership is enforced by row-level security on the bound token.
        rows = await self._request(
            "PATCH",
            MESSAGES_TABLE,
            params={"id": f"eq.{message_id}", "rating": "is.null"},
            json={"rating": rating},
            prefer="return=representation",
        )
        return Message.model_validate(rows[0]) if rows else None
