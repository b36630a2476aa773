"""Bearer credential extraction and verification against Supabase auth."""

from typing import Optional

import httpx
import structlog

from ..config import Settings
from ..domain.errors import AuthenticationRequired, InvalidToken
from ..domain.models import UserIdentity

logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Returns the token carried by an Authorization header value."""
    if not authorization:
        raise AuthenticationRequired()
    return authorization.replace(BEARER_PREFIX, "", 1)


class AuthService:
    """Resolves bearer tokens to user identities via GoTrue."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.base_url = settings.SUPABASE_URL.rstrip("/")
        self.anon_key = settings.SUPABASE_ANON_KEY
        self.client = client

    async def verify(self, token: str) -> UserIdentity:
        """Exchange a token for the identity it was issued to."""
        try:
            response = await self.client.get(
                f"{self.base_url}/auth/v1/user",
                headers={
                    "apikey": self.anon_key,
                    "Authorization": f"{BEARER_PREFIX}{token}",
                },
            )
        except httpx.HTTPError as e:
            logger.warning("token_verification_unreachable", error=str(e))
            raise InvalidToken()

        if not response.is_success:
            logger.warning("token_rejected", status_code=response.status_code)
            raise InvalidToken()

        try:
            data = response.json()
        except ValueError:
            raise InvalidToken()

        if not isinstance(data, dict) or not data.get("id"):
            logger.warning("token_without_user")
            raise InvalidToken()

        return UserIdentity(id=str(data["id"]), email=data.get("email"))
