"""Development authentication provider.

Tokens are decoded but their signatures are NOT checked. Never enable this
provider outside local development.
"""

import time
from logging import getLogger
from typing import Any
from typing import Optional

import jwt

from minispace.exceptions import InvalidSessionError
from minispace.exceptions import InvalidTokenError
from minispace.types import DecodedToken

from .base import AuthProvider

DEV_USER_ID = "dev-user-id"
SUBJECT_CLAIMS = ("user_id", "sub", "uid")

logger = getLogger(__name__)


def decode_jwt_payload(token: str) -> dict[str, Any]:
    """Decode the claims of a JWT without verifying its signature."""
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as exc:
        msg = "Invalid token"
        raise InvalidTokenError(msg) from exc


class DevAuthProvider(AuthProvider):
    """Accepts any well-formed JWT and uses the ID token as the session blob.

    Args:
        project_id: Audience/issuer project reported in the decoded claims
        fallback_user_id: Subject used when a session blob is missing or is
            not a JWT (None = reject such sessions)
    """

    def __init__(
        self,
        project_id: str = "minispace-app-dev",
        fallback_user_id: Optional[str] = None,
    ) -> None:
        self.project_id = project_id
        self.fallback_user_id = fallback_user_id

    def _claims(self, subject_id: str) -> dict[str, Any]:
        now = int(time.time())
        return {
            "aud": self.project_id,
            "auth_time": now,
            "exp": now + 3600,
            "iat": now,
            "iss": f"https://securetoken.google.com/{self.project_id}",
            "sub": subject_id,
            "uid": subject_id,
        }

    async def verify_bearer_token(self, token: str) -> DecodedToken:
        payload = decode_jwt_payload(token)
        subject_id = next(
            (payload[c] for c in SUBJECT_CLAIMS if payload.get(c)),
            None,
        )
        if not isinstance(subject_id, str):
            msg = "Token does not contain a user ID"
            raise InvalidTokenError(msg)

        logger.debug("DEV MODE: accepted unverified token for <%s>", subject_id)
        return DecodedToken(subject_id=subject_id, claims=self._claims(subject_id))

    async def create_session_token(self, token: str, ttl_ms: int) -> str:
        return token

    async def verify_session_token(self, blob: str | None) -> DecodedToken:
        if not blob or blob.count(".") != 2:
            if self.fallback_user_id is None:
                msg = "Missing or malformed session"
                raise InvalidSessionError(msg)
            logger.debug("DEV MODE: using fallback user for session")
            return DecodedToken(
                subject_id=self.fallback_user_id,
                claims=self._claims(self.fallback_user_id),
            )

        try:
            return await self.verify_bearer_token(blob)
        except InvalidTokenError as exc:
            raise InvalidSessionError(str(exc)) from exc
