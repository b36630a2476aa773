"""In-memory repository implementation."""

import asyncio
from typing import Dict, Iterable, List, Optional

import structlog

from ..domain.errors import StorageError
from ..domain.models import Category, Conversation, Message, NewMessage
from .base import Repository

logger = structlog.get_logger()

DEFAULT_CATEGORIES = (
    Category(
        name="Career & Skills",
        description="Digital skills for remote work",
        icon="briefcase",
        color="#ff6b35",
    ),
    Category(
        name="Entrepreneurship",
        description="Launch your digital products",
        icon="rocket",
        color="#4ecdc4",
    ),
    Category(
        name="AI Projects",
        description="Leverage AI tools",
        icon="hardware-chip",
        color="#95e1d3",
    ),
    Category(
        name="Mentorship",
        description="Motivation and guidance",
        icon="people",
        color="#f38181",
    ),
    Category(
        name="Language Learning",
        description="Languages for global opportunities",
        icon="language",
        color="#aa96da",
    ),
    Category(
        name="Custom Advice",
        description="Ask anything",
        icon="chatbubbles",
        color="#fcbad3",
    ),
)


class InMemoryRepository(Repository):
    """Process-local repository for development and tests."""

    def __init__(self, categories: Optional[Iterable[Category]] = None) -> None:
        if categories is None:
            categories = DEFAULT_CATEGORIES
        self._categories: Dict[str, Category] = {c.id: c for c in categories}
        self._conversations: Dict[str, Conversation] = {}
        self._messages: Dict[str, List[Message]] = {}
        self._lock = asyncio.Lock()
        logger.info("repository_initialized", categories=len(self._categories))

    async def insert_messages(self, messages: List[NewMessage]) -> None:
        async with self._lock:
            for new in messages:
                if new.conversation_id not in self._conversations:
                    logger.error(
                        "conversation_not_found_for_message",
                        conversation_id=new.conversation_id,
                    )
                    raise StorageError(f"Conversation {new.conversation_id} not found")

            for new in messages:
                self._messages.setdefault(new.conversation_id, []).append(
                    Message(**new.model_dump())
                )
            logger.info("messages_inserted", count=len(messages))

    async def list_categories(self) -> List[Category]:
        async with self._lock:
            return sorted(self._categories.values(), key=lambda c: c.created_at)

    async def get_category(self, category_id: str) -> Optional[Category]:
        async with self._lock:
            return self._categories.get(category_id)

    async def create_conversation(self, conversation: Conversation) -> Conversation:
        async with self._lock:
            self._conversations[conversation.id] = conversation
            self._messages[conversation.id] = []
            logger.info("conversation_created", conversation_id=conversation.id)
        return conversation

    async def get_messages(self, conversation_id: str, user_id: Optional[str] = None) -> List[Message]:
        async with self._lock:
            conversation = self._conversations.get(conversation_id)
            if user_id is not None and (conversation is None or conversation.user_id != user_id):
                return []
            return list(self._messages.get(conversation_id, []))

    async def rate_message(self, message_id: str, user_id: str, rating: int) -> Optional[Message]:
        async with self._lock:
            for conversation_id, messages in self._messages.items():
                for index, message in enumerate(messages):
                    if message.id != message_id:
                        continue
                    owner = self._conversations[conversation_id].user_id
                    if owner != user_id or message.rating is not None:
                        return None
                    rated = message.model_copy(update={"rating": rating})
                    messages[index] = rated
                    return rated
            return None
