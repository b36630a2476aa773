"""Client for the OpenAI-compatible chat completion API."""

from typing import Any, Optional

import httpx
import structlog

from ..config import Settings
from ..domain.errors import UpstreamServiceError

logger = structlog.get_logger()

NO_RESPONSE_PLACEHOLDER = "No response generated"


class CompletionClient:
    """Issues a single non-streaming completion per chat turn."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.base_url = settings.COMPLETION_BASE_URL.rstrip("/")
        self.api_key = settings.COMPLETION_API_KEY
        self.model = settings.COMPLETION_MODEL
        self.timeout = httpx.Timeout(settings.COMPLETION_TIMEOUT_SECONDS)
        self.client = client
        logger.info(
            "completion_client_init",
            model=self.model,
            timeout=settings.COMPLETION_TIMEOUT_SECONDS,
        )

    def _build_payload(self, system_prompt: str, user_message: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "stream": False,
        }

    async def complete(self, system_prompt: str, user_message: str) -> str:
        """
        Generate the assistant reply for one user message.

        Raises UpstreamServiceError with the upstream body when the API
        answers with a non-success status. A success response without a
        usable first choice yields NO_RESPONSE_PLACEHOLDER.
        """
        response = await self.client.post(
            f"{self.base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json=self._build_payload(system_prompt, user_message),
            timeout=self.timeout,
        )

        if not response.is_success:
            logger.error(
                "completion_api_error",
                status_code=response.status_code,
                body=response.text,
            )
            raise UpstreamServiceError(response.status_code, response.text)

        return extract_reply(response.json())


def extract_reply(data: Any) -> str:
    """Pulls choices[0].message.content out of a completion payload."""
    content: Optional[Any] = None
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            first = choices[0]
            if isinstance(first, dict) and isinstance(first.get("message"), dict):
                content = first["message"].get("content")
    if isinstance(content, str) and content:
        return content
    return NO_RESPONSE_PLACEHOLDER
