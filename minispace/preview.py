"""Short-lived store for theme/layout preview settings."""

import secrets
import string
import time
from collections.abc import Mapping
from logging import getLogger
from typing import Any

from minispace.exceptions import NotFoundError
from minispace.exceptions import ValidationError
from minispace.types import Clock
from minispace.types import PreviewEntry

# 30 minutes
DEFAULT_PREVIEW_TTL = 30 * 60

PREVIEW_ID_SUFFIX_LENGTH = 13
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

logger = getLogger(__name__)


def preview_url(username: str, preview_id: str) -> str:
    """Build the URL that renders a stored preview."""
    return f"/preview/{username}?id={preview_id}"


class PreviewStore:
    """In-memory preview settings keyed by a generated id.

    Every ``store`` and ``retrieve`` first sweeps all expired entries. Ids are
    unlisted but not secret: previews carry theme/layout preferences only.
    Previews are held in this process alone and are lost on restart.
    """

    def __init__(self, *, ttl_seconds: float = DEFAULT_PREVIEW_TTL, clock: Clock = time.time) -> None:
        self.previews: dict[str, PreviewEntry] = {}
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def __len__(self) -> int:
        return len(self.previews)

    def store(self, settings: Any) -> str:
        """Store preview settings and return the id to fetch them with.

        Raises:
            ValidationError: If settings is not an object with a username
        """
        now = self._sweep()

        if not isinstance(settings, Mapping):
            msg = "Preview settings must be an object"
            raise ValidationError(msg)
        username = settings.get("username")
        # A non-empty string or non-zero integer identifies the owner
        if isinstance(username, bool) or not isinstance(username, (str, int)) or not username:
            msg = "Preview settings require a username"
            raise ValidationError(msg)

        preview_id = self._generate_id(str(username), now)
        self.previews[preview_id] = PreviewEntry(
            settings=dict(settings),
            expires_at=now + self.ttl_seconds,
        )
        logger.debug("Stored preview <%s>", preview_id)
        return preview_id

    def retrieve(self, preview_id: str) -> dict[str, Any]:
        """Return the stored settings for ``preview_id``.

        The stored object itself is returned; callers must not mutate it.

        Raises:
            NotFoundError: If the id is unknown or its preview has expired
        """
        now = self._sweep()
        entry = self.previews.get(preview_id)
        if entry is None or entry.expires_at <= now:
            msg = "Preview not found or expired"
            raise NotFoundError(msg)
        return entry.settings

    def delete(self, preview_id: str) -> None:
        self.previews.pop(preview_id, None)

    def _sweep(self) -> float:
        now = self._clock()
        expired = [k for k, v in self.previews.items() if v.expires_at < now]
        for key in expired:
            del self.previews[key]
        if expired:
            logger.debug("Swept %d expired previews", len(expired))
        return now

    @staticmethod
    def _generate_id(username: str, now: float) -> str:
        suffix = "".join(
            secrets.choice(_SUFFIX_ALPHABET) for _ in range(PREVIEW_ID_SUFFIX_LENGTH)
        )
        return f"{username}_{int(now * 1000)}_{suffix}"
