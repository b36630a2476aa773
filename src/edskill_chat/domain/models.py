"""Domain models for the chat application."""

from datetime import datetime, timezone
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


Role = Literal["user", "assistant"]


class Category(BaseModel):
    """Advice category; selects the assistant persona."""

    id: str = Field(default_factory=_new_id)
    name: str
    description: str = ""
    icon: str = ""
    color: str = ""
    created_at: datetime = Field(default_factory=_utcnow)


class Conversation(BaseModel):
    """Conversation model."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    category_id: str
    title: str
    created_at: datetime = Field(default_factory=_utcnow)


class Message(BaseModel):
    """Message model."""

    id: str = Field(default_factory=_new_id)
    conversation_id: str
    role: Role
    content: str
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    created_at: datetime = Field(default_factory=_utcnow)


class NewMessage(BaseModel):
    """Row handed to storage for a single chat turn."""

    conversation_id: str
    role: Role
    content: str


class UserIdentity(BaseModel):
    """Caller identity as verified by the auth provider."""

    id: str
    email: Optional[str] = None


class ChatRequest(BaseModel):
    """Body of a chat relay call."""

    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(alias="conversationId")
    message: str
    category_name: Optional[str] = Field(default=None, alias="categoryName")


class ChatReply(BaseModel):
    message: str


class ErrorReply(BaseModel):
    error: str


class ConversationCreate(BaseModel):
    """Defines the structure for conversation creation requests"""

    model_config = ConfigDict(populate_by_name=True)

    category_id: str = Field(alias="categoryId")


class RatingUpdate(BaseModel):
    rating: int = Field(ge=1, le=5)
