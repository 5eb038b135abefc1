"""Type definitions and type aliases for Minispace."""

from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from typing import TypeVar

T = TypeVar("T")

# A fetch may be a coroutine function or a plain callable
FetchFn = Callable[[], Awaitable[T] | T]

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """Cached fetch result.

    Args:
        value: The cached value, opaque to the cache
        stored_at: Epoch timestamp when the value was written
        expires_at: Epoch timestamp after which the value is stale
    """

    value: Any
    stored_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


@dataclass
class PreviewEntry:
    """Preview settings with a fixed expiry time."""

    settings: dict[str, Any]
    expires_at: float


@dataclass
class DecodedToken:
    """Result of verifying a bearer token or session token."""

    subject_id: str
    claims: dict[str, Any]
