"""Cached reads and cache-aware writes over the document store."""

from collections.abc import Awaitable
from logging import getLogger
from typing import Any
from typing import Optional

from minispace.cache import DataCache
from minispace.documents import Document
from minispace.documents import DocumentStore
from minispace.exceptions import MinispaceError
from minispace.exceptions import NotFoundError
from minispace.exceptions import UpstreamError
from minispace.types import T

USERS = "Users"
PAGES = "Pages"

# Fields of a user document that are safe to show to anyone
PUBLIC_USER_FIELDS = (
    "username",
    "displayName",
    "bio",
    "enableBlog",
    "customDomain",
    "blogSettings",
)

logger = getLogger(__name__)


def user_key(username: str) -> str:
    return f"user:{username}"


def page_key(user_id: str, slug: str) -> str:
    return f"page:{user_id}:{slug}"


def public_profile(user: Document) -> Document:
    return {field: user.get(field) for field in PUBLIC_USER_FIELDS}


async def upstream(call: Awaitable[T]) -> T:
    """Await a document store call, wrapping unexpected failures."""
    try:
        return await call
    except MinispaceError:
        raise
    except Exception as exc:
        logger.exception("Document store call failed")
        raise UpstreamError(str(exc) or exc.__class__.__name__) from exc


class SiteService:
    """Read users and pages through the data cache.

    Reads populate ``user:<username>`` and ``page:<user_id>:<slug>``. Writes
    invalidate the affected keys, except blog settings which are patched in
    place so the cached user keeps its remaining TTL.
    """

    def __init__(self, documents: DocumentStore, cache: DataCache) -> None:
        self.documents = documents
        self.cache = cache

    async def get_user_by_username(self, username: str, *, bypass_cache: bool = False) -> Document:
        async def fetch() -> Document:
            user = await upstream(self.documents.find_one(USERS, username=username))
            if user is None:
                msg = f"User {username} not found"
                raise NotFoundError(msg)
            return user

        return await self.cache.get_or_fetch(user_key(username), fetch, bypass_cache=bypass_cache)

    async def get_user(self, user_id: str) -> Document:
        user = await upstream(self.documents.get_by_id(USERS, user_id))
        if user is None:
            msg = "User not found"
            raise NotFoundError(msg)
        return user

    async def get_page(self, username: str, slug: str) -> Document:
        user = await self.get_user_by_username(username)

        async def fetch() -> Document:
            page = await upstream(
                self.documents.find_one(PAGES, userId=user["id"], slug=slug, isPublished=True)
            )
            if page is None:
                msg = f"Page {slug} not found"
                raise NotFoundError(msg)
            return page

        return await self.cache.get_or_fetch(page_key(user["id"], slug), fetch)

    async def create_page(self, user_id: str, fields: dict[str, Any]) -> str:
        page_id = await upstream(self.documents.insert(PAGES, {**fields, "userId": user_id}))
        self.cache.invalidate_by_prefix(f"page:{user_id}:")
        return page_id

    async def update_page(self, user_id: str, page_id: str, fields: dict[str, Any]) -> None:
        page = await upstream(self.documents.get_by_id(PAGES, page_id))
        if page is None or page.get("userId") != user_id:
            msg = "Page not found"
            raise NotFoundError(msg)
        await upstream(self.documents.update(PAGES, page_id, fields))
        self.cache.invalidate_by_prefix(f"page:{user_id}:")

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> None:
        user = await self.get_user(user_id)
        await upstream(self.documents.update(USERS, user_id, fields))
        # A user without a username has no cached profile yet
        old_username = user.get("username")
        if old_username:
            self.cache.invalidate(user_key(old_username))
        new_username: Optional[str] = fields.get("username")
        if new_username:
            self.cache.invalidate(user_key(new_username))

    async def update_blog_settings(self, user_id: str, settings: dict[str, Any]) -> Document:
        user = await self.get_user(user_id)
        merged = {**(user.get("blogSettings") or {}), **settings}
        await upstream(self.documents.update(USERS, user_id, {"blogSettings": merged}))
        if user.get("username"):
            self.cache.update(
                user_key(user["username"]),
                lambda cached: {**cached, "blogSettings": merged},
            )
        return merged
