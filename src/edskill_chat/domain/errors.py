"""Error taxonomy shared by the chat relay and the conversation API."""

from typing import Optional


class ChatError(Exception):
    """Base class for failures that map onto an HTTP error payload."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthenticationRequired(ChatError):
    """Raised when the request carries no bearer credential."""

    status_code = 401

    def __init__(self, message: str = "Authorization required"):
        super().__init__(message)


class InvalidToken(ChatError):
    """Raised when the auth provider rejects the bearer credential."""

    status_code = 401

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class UpstreamServiceError(ChatError):
    """Raised when the completion API answers with a non-success status."""

    status_code = 500

    def __init__(self, upstream_status: int, body: str):
        super().__init__(f"AI service error: {body}")
        self.upstream_status = upstream_status
        self.body = body


class StorageError(ChatError):
    """Raised by repositories when a read or write fails."""


class NotFound(ChatError):
    status_code = 404


class RatingRejected(ChatError):
    """Raised when a message cannot be rated by the caller."""

    status_code = 409
