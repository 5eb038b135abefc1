"""FastAPI dependencies resolving the stores owned by the application."""

from typing import Annotated
from typing import Any

from fastapi import Depends
from fastapi import Request

from minispace.auth import AuthProvider
from minispace.cache import DataCache
from minispace.config import MinispaceConfig
from minispace.documents import DocumentStore
from minispace.exceptions import InvalidSessionError
from minispace.exceptions import NotConfiguredError
from minispace.preview import PreviewStore
from minispace.services import SiteService
from minispace.types import DecodedToken


def _state(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        msg = f"{name} is not set. Build the application with create_app()."
        raise NotConfiguredError(msg)
    return value


def get_config(request: Request) -> MinispaceConfig:
    return _state(request, "config")


def get_data_cache(request: Request) -> DataCache:
    return _state(request, "data_cache")


def get_preview_store(request: Request) -> PreviewStore:
    return _state(request, "preview_store")


def get_auth_provider(request: Request) -> AuthProvider:
    return _state(request, "auth_provider")


def get_document_store(request: Request) -> DocumentStore:
    return _state(request, "document_store")


def get_site_service(request: Request) -> SiteService:
    return _state(request, "site_service")


AppConfig = Annotated[MinispaceConfig, Depends(get_config)]
Cache = Annotated[DataCache, Depends(get_data_cache)]
Previews = Annotated[PreviewStore, Depends(get_preview_store)]
Auth = Annotated[AuthProvider, Depends(get_auth_provider)]
Documents = Annotated[DocumentStore, Depends(get_document_store)]
Site = Annotated[SiteService, Depends(get_site_service)]


async def get_current_user(request: Request, config: AppConfig, auth: Auth) -> DecodedToken:
    """Verify the session cookie and return the signed-in subject.

    Raises:
        InvalidSessionError: If there is no session cookie or it is invalid
    """
    blob = request.cookies.get(config.session_cookie_name)
    if not blob:
        msg = "Not authenticated"
        raise InvalidSessionError(msg)
    return await auth.verify_session_token(blob)


CurrentUser = Annotated[DecodedToken, Depends(get_current_user)]
