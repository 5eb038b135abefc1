"""Application factory."""

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from logging import getLogger
from typing import Optional

from fastapi import FastAPI

from minispace.auth import AuthProvider
from minispace.auth import DevAuthProvider
from minispace.auth.dev import DEV_USER_ID
from minispace.cache import DataCache
from minispace.config import MinispaceConfig
from minispace.documents import DocumentStore
from minispace.documents import MemoryDocumentStore
from minispace.exceptions import NotConfiguredError
from minispace.middleware import SiteRoutingMiddleware
from minispace.preview import PreviewStore
from minispace.routes import add_routes
from minispace.services import SiteService
from minispace.types import Clock

logger = getLogger(__name__)


def create_app(
    config: Optional[MinispaceConfig] = None,
    *,
    auth_provider: Optional[AuthProvider] = None,
    document_store: Optional[DocumentStore] = None,
    clock: Clock = time.time,
) -> FastAPI:
    """Build the Minispace application.

    The data cache and preview store are created here and live exactly as
    long as the returned application. They are kept on ``app.state`` and
    reach routes through the dependencies in ``minispace.dependencies``.
    Nothing is shared with other processes running the same application.

    Args:
        config: Application settings (default: read from the environment)
        auth_provider: Token verifier; required unless ``config.dev_mode``
        document_store: System of record (default: in-memory store)
        clock: Time source for the cache and preview store

    Raises:
        NotConfiguredError: If no auth provider is given outside dev mode
    """
    config = config or MinispaceConfig()

    if auth_provider is None:
        if not config.dev_mode:
            msg = "An auth provider is required unless dev_mode is enabled"
            raise NotConfiguredError(msg)
        logger.warning("DEV MODE: tokens are accepted without verification")
        auth_provider = DevAuthProvider(fallback_user_id=DEV_USER_ID)

    if document_store is None:
        logger.warning("No document store configured, using an in-memory store")
        document_store = MemoryDocumentStore()

    data_cache = DataCache(
        default_expiration_ms=config.cache_expiration_ms,
        max_entries=config.cache_max_entries,
        cleanup_interval=config.cache_cleanup_interval,
        coalesce_fetches=config.cache_coalesce_fetches,
        clock=clock,
    )
    preview_store = PreviewStore(ttl_seconds=config.preview_ttl, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        data_cache.start_cleanup()
        try:
            yield
        finally:
            data_cache.stop_cleanup()
            data_cache.clear()

    app = FastAPI(title="Minispace", lifespan=lifespan)
    app.state.config = config
    app.state.data_cache = data_cache
    app.state.preview_store = preview_store
    app.state.auth_provider = auth_provider
    app.state.document_store = document_store
    app.state.site_service = SiteService(document_store, data_cache)

    app.add_middleware(SiteRoutingMiddleware, config=config)
    add_routes(app)
    return app
