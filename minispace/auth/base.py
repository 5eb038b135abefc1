from abc import ABC
from abc import abstractmethod

from minispace.types import DecodedToken


class AuthProvider(ABC):
    """Base class for authentication providers."""

    @abstractmethod
    async def verify_bearer_token(self, token: str) -> DecodedToken:
        """Verify an ID token issued to a signed-in client.

        Raises:
            InvalidTokenError: If the token is malformed, expired or forged
        """

    @abstractmethod
    async def create_session_token(self, token: str, ttl_ms: int) -> str:
        """Exchange a verified ID token for an opaque session blob."""

    @abstractmethod
    async def verify_session_token(self, blob: str | None) -> DecodedToken:
        """Verify a session blob from the session cookie.

        Raises:
            InvalidSessionError: If the blob is missing or not valid
        """
