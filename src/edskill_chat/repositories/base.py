"""Base repository interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..domain.models import Category, Conversation, Message, NewMessage


class Repository(ABC):
    """Abstract base class for repositories.

    Implementations raise StorageError when the backing store fails.
    """

    def bind(self, access_token: str) -> "Repository":
        """Return a repository acting on behalf of the given caller."""
        return self

    @abstractmethod
    async def insert_messages(self, messages: List[NewMessage]) -> None:
        """Append messages to the log in one batch, preserving order."""
        pass

    @abstractmethod
    async def list_categories(self) -> List[Category]:
        """List advice categories ordered by creation time."""
        pass

    @abstractmethod
    async def get_category(self, category_id: str) -> Optional[Category]:
        """Retrieve a category by ID."""
        pass

    @abstractmethod
    async def create_conversation(self, conversation: Conversation) -> Conversation:
        """Persist a new conversation."""
        pass

    @abstractmethod
    async def get_messages(self, conversation_id: str, user_id: Optional[str] = None) -> List[Message]:
        """Get messages for a conversation in insertion order.

        With a user_id, only a conversation owned by that user yields rows.
        """
        pass

    @abstractmethod
    async def rate_message(self, message_id: str, user_id: str, rating: int) -> Optional[Message]:
        """Set the rating of an unrated message owned by the user.

        Returns None when no such message is eligible.
        """
        pass
