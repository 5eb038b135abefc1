"""HTTP routes for previews, authentication and public site reads."""

import json
from logging import getLogger
from typing import Any
from typing import Optional

from fastapi import APIRouter
from fastapi import FastAPI
from fastapi import Query
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from starlette.status import HTTP_400_BAD_REQUEST
from starlette.status import HTTP_401_UNAUTHORIZED
from starlette.status import HTTP_404_NOT_FOUND
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR
from starlette.status import HTTP_502_BAD_GATEWAY

from minispace.dependencies import AppConfig
from minispace.dependencies import Auth
from minispace.dependencies import CurrentUser
from minispace.dependencies import Documents
from minispace.dependencies import Previews
from minispace.dependencies import Site
from minispace.exceptions import AuthError
from minispace.exceptions import MinispaceError
from minispace.exceptions import NotFoundError
from minispace.exceptions import UpstreamError
from minispace.exceptions import ValidationError
from minispace.services import USERS
from minispace.services import public_profile

logger = getLogger(__name__)

preview_router = APIRouter(prefix="/api/preview", tags=["preview"])
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])
site_router = APIRouter(prefix="/api/sites", tags=["sites"])


class LoginRequest(BaseModel):
    """Body of a login request."""

    model_config = ConfigDict(populate_by_name=True)

    id_token: Optional[str] = Field(default=None, alias="idToken")
    redirect: Optional[str] = None


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def safe_redirect(target: Optional[str], default: str = "/") -> str:
    """Only allow same-site absolute paths as redirect targets."""
    if not target or not target.startswith("/") or target.startswith("//"):
        return default
    return target


@preview_router.post("/settings", response_model=None)
async def store_preview_settings(request: Request, previews: Previews) -> dict[str, str] | JSONResponse:
    """Store temporary preview settings.

    Failures other than bad input answer 500 "Failed to store preview settings"
    rather than the generic internal error.
    """
    try:
        settings = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        msg = "Invalid request"
        raise ValidationError(msg) from exc

    try:
        preview_id = previews.store(settings)
    except ValidationError:
        raise
    except Exception:
        logger.exception("Error storing preview settings")
        return error_response(HTTP_500_INTERNAL_SERVER_ERROR, "Failed to store preview settings")
    return {"previewId": preview_id}


@preview_router.get("/settings")
async def get_preview_settings(
    previews: Previews, preview_id: Optional[str] = Query(default=None, alias="id")
) -> dict[str, Any]:
    """Retrieve temporary preview settings."""
    if not preview_id:
        msg = "Preview not found or expired"
        raise NotFoundError(msg)
    return {"settings": previews.retrieve(preview_id)}


@auth_router.post("/login")
async def login(body: LoginRequest, auth: Auth, documents: Documents, config: AppConfig) -> JSONResponse:
    """Exchange an ID token for a session cookie."""
    if not body.id_token:
        msg = "ID token is required"
        raise ValidationError(msg)

    decoded = await auth.verify_bearer_token(body.id_token)
    session = await auth.create_session_token(body.id_token, config.session_ttl_ms)
    logger.info("Session created for user <%s>", decoded.subject_id)

    redirect = body.redirect
    if not redirect:
        try:
            user = await documents.get_by_id(USERS, decoded.subject_id)
        except Exception:
            logger.warning("Could not look up user <%s> for redirect", decoded.subject_id, exc_info=True)
            user = None
        username = (user or {}).get("username")
        redirect = f"/{username}/dashboard" if username else "/settings"

    response = JSONResponse({"success": True, "redirect": redirect})
    response.set_cookie(
        config.session_cookie_name,
        session,
        max_age=config.session_ttl_ms // 1000,
        path="/",
        secure=config.cookie_secure,
        httponly=True,
        samesite=config.cookie_samesite,
    )
    return response


@auth_router.delete("/login")
async def clear_session(config: AppConfig) -> JSONResponse:
    """Clear the session cookie."""
    response = JSONResponse({"success": True})
    response.delete_cookie(config.session_cookie_name, path="/")
    return response


@auth_router.get("/logout")
async def logout(config: AppConfig, redirect: Optional[str] = None) -> RedirectResponse:
    """Clear the session cookie and redirect."""
    target = safe_redirect(redirect)
    response = RedirectResponse(target)
    response.delete_cookie(
        config.session_cookie_name,
        path="/",
        secure=config.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    logger.info("User logged out, redirecting to <%s>", target)
    return response


@auth_router.get("/me")
async def me(current_user: CurrentUser, site: Site) -> dict[str, Any]:
    """Return the signed-in user's profile, without sensitive fields."""
    user = await site.get_user(current_user.subject_id)
    return {
        "uid": current_user.subject_id,
        "username": user.get("username"),
        "displayName": user.get("displayName"),
        "email": user.get("email"),
        "enableBlog": user.get("enableBlog"),
        "customDomain": user.get("customDomain"),
    }


@site_router.get("/{username}")
async def get_site(username: str, site: Site) -> dict[str, Any]:
    return public_profile(await site.get_user_by_username(username))


@site_router.get("/{username}/pages/{slug}")
async def get_site_page(username: str, slug: str, site: Site) -> dict[str, Any]:
    return await site.get_page(username, slug)


@site_router.patch("/{username}/blog-settings")
async def update_blog_settings(
    username: str, settings: dict[str, Any], current_user: CurrentUser, site: Site
) -> dict[str, Any]:
    """Merge blog settings into the owner's site."""
    user = await site.get_user(current_user.subject_id)
    if user.get("username") != username:
        # Only the owner may edit; do not reveal whether the site exists
        msg = "Site not found"
        raise NotFoundError(msg)
    return {"blogSettings": await site.update_blog_settings(current_user.subject_id, settings)}


async def _validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return error_response(HTTP_400_BAD_REQUEST, str(exc) or "Invalid request")


async def _request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.debug("Rejected request body: %s", exc)
    return error_response(HTTP_400_BAD_REQUEST, "Invalid request")


async def _not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return error_response(HTTP_404_NOT_FOUND, str(exc) or "Not found")


async def _auth_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.info("Authentication failed: %s", exc)
    return error_response(HTTP_401_UNAUTHORIZED, str(exc) or "Unauthorized request")


async def _upstream_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return error_response(HTTP_502_BAD_GATEWAY, "Upstream service failed")


async def _internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled application error", exc_info=exc)
    return error_response(HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(AuthError, _auth_error_handler)
    app.add_exception_handler(UpstreamError, _upstream_error_handler)
    app.add_exception_handler(MinispaceError, _internal_error_handler)
    app.add_exception_handler(Exception, _internal_error_handler)


def add_routes(app: FastAPI, prefix: str = "") -> None:
    """Add the Minispace routes and error handlers to a FastAPI application.

    Args:
        app: The FastAPI application instance
        prefix: Optional prefix for all routes
    """
    app.include_router(preview_router, prefix=prefix)
    app.include_router(auth_router, prefix=prefix)
    app.include_router(site_router, prefix=prefix)
    add_exception_handlers(app)
