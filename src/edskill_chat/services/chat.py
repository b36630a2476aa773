"""
Chat relay pipeline.

One invocation walks validator, identity resolver, prompt selector,
completion client, persistence writer in that order. Failures before the
completion call short-circuit; a failed write to the message log is logged
and swallowed so the caller still gets the reply (history may then be
missing a turn the user saw on screen).
"""

from typing import Optional, Tuple

import structlog

from ..domain.errors import StorageError
from ..domain.models import ChatRequest, NewMessage, UserIdentity
from ..repositories.base import Repository
from ..telemetry import PERSIST_FAILURES
from .auth import AuthService, extract_bearer_token
from .llm import CompletionClient
from .prompts import select_system_prompt

logger = structlog.get_logger()


class ChatRelay:
    """Forwards one user message to the completion API and logs the turn."""

    def __init__(
        self,
        auth: AuthService,
        completions: CompletionClient,
        repository: Repository,
    ):
        self.auth = auth
        self.completions = completions
        self.repository = repository

    async def authenticate(self, authorization: Optional[str]) -> Tuple[str, UserIdentity]:
        token = extract_bearer_token(authorization)
        user = await self.auth.verify(token)
        return token, user

    async def relay(self, token: str, user: UserIdentity, request: ChatRequest) -> str:
        """Runs the post-authentication part of the pipeline, returning the reply."""
        logger.info(
            "chat_request",
            user_id=user.id,
            conversation_id=request.conversation_id,
            category_name=request.category_name,
        )

        system_prompt = select_system_prompt(request.category_name)
        reply = await self.completions.complete(system_prompt, request.message)
        logger.info("ai_response_generated", length=len(reply))

        await self._persist(token, request.conversation_id, request.message, reply)
        return reply

    async def _persist(self, token: str, conversation_id: str, user_text: str, reply: str) -> None:
        try:
            await self.repository.bind(token).insert_messages([
                NewMessage(conversation_id=conversation_id, role="user", content=user_text),
                NewMessage(conversation_id=conversation_id, role="assistant", content=reply),
            ])
        except StorageError as e:
            PERSIST_FAILURES.inc()
            logger.error(
                "message_persist_failed",
                conversation_id=conversation_id,
                error=str(e),
            )
