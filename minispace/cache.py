"""Process-local TTL cache over asynchronous fetches."""

import asyncio
import heapq
import inspect
import time
from collections.abc import Callable
from logging import getLogger
from typing import Any
from typing import Optional

from minispace.exceptions import ValidationError
from minispace.types import CacheEntry
from minispace.types import Clock
from minispace.types import FetchFn
from minispace.types import T

# Default cache expiration: 5 minutes
DEFAULT_EXPIRATION_MS = 5 * 60 * 1000

logger = getLogger(__name__)


async def call_fetch(fetch_fn: FetchFn[T]) -> T:
    """Call the fetch function, awaiting its result when needed."""
    result = fetch_fn()
    if inspect.isawaitable(result):
        return await result
    return result


class DataCache:
    """In-memory cache of fetch results with per-entry expiry.

    Entries are expired lazily: a stale entry stays in the map until it is
    overwritten, invalidated, swept by :meth:`cleanup` or evicted to respect
    ``max_entries``. The cache lives in one process only; separate processes
    or instances each hold their own independent copy.

    Args:
        default_expiration_ms: TTL used when ``get_or_fetch`` is not given one
        max_entries: Upper bound on stored entries (None = unbounded). When
            exceeded, expired entries are dropped first, then the entries
            closest to expiry are evicted.
        cleanup_interval: Seconds between sweeps once ``start_cleanup`` runs
        coalesce_fetches: If True, concurrent misses on the same key await a
            single shared fetch instead of each fetching
        clock: Returns the current epoch time in seconds
    """

    def __init__(
        self,
        *,
        default_expiration_ms: int = DEFAULT_EXPIRATION_MS,
        max_entries: Optional[int] = None,
        cleanup_interval: float = 60,
        coalesce_fetches: bool = False,
        clock: Clock = time.time,
    ) -> None:
        _check_expiration(default_expiration_ms)
        if max_entries is not None and max_entries <= 0:
            msg = "max_entries must be a positive integer or None"
            raise ValidationError(msg)

        self.cache: dict[str, CacheEntry] = {}
        self.default_expiration_ms = default_expiration_ms
        self.max_entries = max_entries
        self.cleanup_interval = cleanup_interval
        self.coalesce_fetches = coalesce_fetches
        self._clock = clock
        self._inflight: dict[str, asyncio.Task[Any]] = {}
        self._cleanup_task: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self.cache)

    async def get_or_fetch(
        self,
        key: str,
        fetch_fn: FetchFn[T],
        *,
        expiration_time_ms: Optional[int] = None,
        bypass_cache: bool = False,
    ) -> T:
        """Return the cached value for ``key`` or fetch and cache it.

        A failing ``fetch_fn`` propagates its exception unchanged and leaves
        no entry behind, so the next call fetches again.

        Args:
            key: Cache key, conventionally ``"<namespace>:<id>"``
            fetch_fn: Zero-argument callable producing the value (sync or async)
            expiration_time_ms: TTL of the written entry in milliseconds
            bypass_cache: Always fetch, ignoring any fresh entry

        Raises:
            ValidationError: If the key is empty or the TTL is not positive
        """
        if not isinstance(key, str) or not key:
            msg = "Cache key must be a non-empty string"
            raise ValidationError(msg)
        if expiration_time_ms is None:
            expiration_time_ms = self.default_expiration_ms
        _check_expiration(expiration_time_ms)

        if not bypass_cache:
            entry = self.cache.get(key)
            if entry is not None and not entry.is_expired(self._clock()):
                logger.debug("Cache hit: <%s>", key)
                return entry.value

            if self.coalesce_fetches:
                return await self._fetch_shared(key, fetch_fn, expiration_time_ms)

        logger.debug("Cache miss: <%s>", key)
        value = await call_fetch(fetch_fn)
        self._store(key, value, expiration_time_ms)
        return value

    async def _fetch_shared(
        self, key: str, fetch_fn: FetchFn[T], expiration_time_ms: int
    ) -> T:
        task = self._inflight.get(key)
        if task is None:
            logger.debug("Cache miss: <%s>", key)
            task = asyncio.get_running_loop().create_task(
                self._fetch_and_store(key, fetch_fn, expiration_time_ms)
            )
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._fetch_done(key, t))
        else:
            logger.debug("Joining in-flight fetch: <%s>", key)
        # The fetch runs in its own task: cancelling any caller, the first
        # one included, leaves it running for the others
        return await asyncio.shield(task)

    async def _fetch_and_store(
        self, key: str, fetch_fn: FetchFn[T], expiration_time_ms: int
    ) -> T:
        value = await call_fetch(fetch_fn)
        self._store(key, value, expiration_time_ms)
        return value

    def _fetch_done(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark retrieved when every caller was cancelled before it finished
            task.exception()

    def _store(self, key: str, value: Any, expiration_time_ms: int) -> None:
        now = self._clock()
        self.cache[key] = CacheEntry(
            value=value,
            stored_at=now,
            expires_at=now + expiration_time_ms / 1000,
        )
        if self.max_entries is not None and len(self.cache) > self.max_entries:
            self._evict(now, keep=key)

    def _evict(self, now: float, keep: str) -> None:
        self._remove_expired(now)
        excess = len(self.cache) - self.max_entries
        if excess <= 0:
            return

        candidates = (
            (entry.expires_at, k) for k, entry in self.cache.items() if k != keep
        )
        for _, k in heapq.nsmallest(excess, candidates):
            del self.cache[k]
        logger.debug("Evicted %d cache entries over the %d limit", excess, self.max_entries)

    def invalidate(self, key: str) -> None:
        """Remove the entry for ``key`` if present."""
        self.cache.pop(key, None)

    def invalidate_by_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``.

        Returns:
            Number of entries removed
        """
        keys = [k for k in self.cache if k.startswith(prefix)]
        for k in keys:
            del self.cache[k]
        return len(keys)

    def clear(self) -> None:
        """Remove all entries."""
        self.cache.clear()

    def update(self, key: str, update_fn: Callable[[Any], Any]) -> bool:
        """Replace the value stored for ``key`` keeping its expiry time.

        The entry is patched whether or not it has expired.

        Returns:
            True if an entry was updated, False if the key is absent
        """
        entry = self.cache.get(key)
        if entry is None:
            return False
        entry.value = update_fn(entry.value)
        return True

    def get_all_keys(self) -> list[str]:
        return list(self.cache)

    def get_cache_data(self) -> dict[str, tuple[Any, float]]:
        """Return every entry, expired ones included, as ``(value, expires_at)``."""
        return {k: (v.value, v.expires_at) for k, v in self.cache.items()}

    def cleanup(self) -> int:
        """Remove expired entries and return how many were removed."""
        return self._remove_expired(self._clock())

    def _remove_expired(self, now: float) -> int:
        expired_keys = [k for k, v in self.cache.items() if v.is_expired(now)]
        for key in expired_keys:
            self.cache.pop(key, None)
        return len(expired_keys)

    async def _run_cleanup(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            removed = self.cleanup()
            if removed:
                logger.debug("Swept %d expired cache entries", removed)

    def start_cleanup(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        logger.info("Starting cache cleanup every %s seconds", self.cleanup_interval)
        self._cleanup_task = asyncio.get_running_loop().create_task(
            self._run_cleanup()
        )

    def stop_cleanup(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            self._cleanup_task = None


def _check_expiration(expiration_time_ms: int) -> None:
    if (
        not isinstance(expiration_time_ms, int)
        or isinstance(expiration_time_ms, bool)
        or expiration_time_ms <= 0
    ):
        msg = "expiration_time_ms must be a positive integer"
        raise ValidationError(msg)
