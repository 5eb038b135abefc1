"""Dashboard session gate and user subdomain routing."""

import ipaddress
from logging import getLogger
from typing import Optional

from starlette.datastructures import URL
from starlette.requests import Request
from starlette.responses import RedirectResponse
from starlette.types import ASGIApp
from starlette.types import Receive
from starlette.types import Scope
from starlette.types import Send

from minispace.config import MinispaceConfig

# Paths served identically on every host
PASSTHROUGH_PREFIXES = ("/api/", "/subdomain/")
LOCAL_HOST_PREFIXES = ("localhost", "127.0.0.1")

logger = getLogger(__name__)


class SiteRoutingMiddleware:
    """Route requests before they reach the application.

    Dashboard paths require a session cookie; without one the client is sent
    to the login page. The cookie is only checked for presence here, routes
    verify it. Requests on a user subdomain such as ``alice.minispace.app``
    are rewritten to ``/subdomain/alice<path>``.
    """

    def __init__(self, app: ASGIApp, config: Optional[MinispaceConfig] = None) -> None:
        self.app = app
        self.config = config or MinispaceConfig()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        path: str = scope["path"]

        if "/dashboard" in path:
            if not request.cookies.get(self.config.session_cookie_name):
                url = URL(self.config.login_path).include_query_params(redirect=path)
                response = RedirectResponse(str(url))
                await response(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        subdomain = self.get_subdomain(request.headers.get("host", ""))
        if subdomain and not path.startswith(PASSTHROUGH_PREFIXES):
            rewritten = f"/subdomain/{subdomain}{path}"
            logger.debug("Rewriting <%s> to <%s>", path, rewritten)
            scope = {**scope, "path": rewritten, "raw_path": rewritten.encode()}

        await self.app(scope, receive, send)

    def get_subdomain(self, host: str) -> Optional[str]:
        """Return the user label of ``host`` or None for the main site."""
        hostname = host.rsplit(":", 1)[0] if host.count(":") == 1 else host
        if not hostname or hostname.startswith(LOCAL_HOST_PREFIXES):
            return None
        try:
            ipaddress.ip_address(hostname.strip("[]"))
        except ValueError:
            pass
        else:
            return None

        labels = hostname.lower().split(".")
        if len(labels) < 3:
            return None
        subdomain = labels[0]
        if not subdomain or self.config.root_domain_label in subdomain or subdomain == "www":
            return None
        return subdomain
