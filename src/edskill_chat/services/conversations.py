"""Conversation bookkeeping used by the mobile screens."""

from datetime import date
from typing import List, Optional

import structlog

from ..domain.errors import NotFound, RatingRejected
from ..domain.models import Category, Conversation, Message, UserIdentity
from ..repositories.base import Repository

logger = structlog.get_logger()


def conversation_title(category: Category, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{category.name} - {today.isoformat()}"


class ConversationService:
    """Categories, conversations and message ratings on behalf of a caller."""

    def __init__(self, repository: Repository):
        self.repository = repository

    async def list_categories(self, token: str) -> List[Category]:
        return await self.repository.bind(token).list_categories()

    async def start_conversation(self, token: str, user: UserIdentity, category_id: str) -> Conversation:
        """Opens a new conversation for the user in the given category."""
        repository = self.repository.bind(token)
        category = await repository.get_category(category_id)
        if category is None:
            logger.warning("category_not_found", category_id=category_id)
            raise NotFound("Category not found")

        conversation = await repository.create_conversation(
            Conversation(
                user_id=user.id,
                category_id=category.id,
                title=conversation_title(category),
            )
        )
        logger.info("conversation_started", conversation_id=conversation.id, user_id=user.id)
        return conversation

    async def get_messages(self, token: str, user: UserIdentity, conversation_id: str) -> List[Message]:
        return await self.repository.bind(token).get_messages(conversation_id, user.id)

    async def rate_message(self, token: str, user: UserIdentity, message_id: str, rating: int) -> Message:
        """Ratings are write-once and limited to the conversation owner."""
        rated = await self.repository.bind(token).rate_message(message_id, user.id, rating)
        if rated is None:
            logger.warning("rating_rejected", message_id=message_id, user_id=user.id)
            raise RatingRejected("Message cannot be rated")
        return rated
