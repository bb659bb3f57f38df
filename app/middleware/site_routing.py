"""
Host based site dispatch middleware.

Resolves the request ``Host`` header through the routing registry, puts the
matching entry on ``request.state.site`` and refuses requests for hosts the
registry does not serve.
"""

import logging
from typing import Callable, List, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.exceptions import ROUTING_UNAVAILABLE, SITE_INACTIVE, SiteRoutingError

logger = logging.getLogger(__name__)


class SiteRoutingMiddleware(BaseHTTPMiddleware):
    """
    Middleware binding every request to a site.

    Unrouted paths (health checks, docs) are always served. Admin paths are
    served for any registered host, active or not. Every other path needs an
    active entry. Refusals are raised as SiteRoutingError and rendered by the
    error handling middleware, which must wrap this one.
    """

    def __init__(
        self,
        app,
        admin_prefixes: Optional[List[str]] = None,
        unrouted_prefixes: Optional[List[str]] = None,
    ):
        super().__init__(app)
        self.admin_prefixes = admin_prefixes if admin_prefixes is not None else settings.ADMIN_PATH_PREFIXES
        self.unrouted_prefixes = (
            unrouted_prefixes if unrouted_prefixes is not None else settings.UNROUTED_PATH_PREFIXES
        )
        logger.info(
            f"Site routing middleware initialized with {len(self.admin_prefixes)} admin "
            f"and {len(self.unrouted_prefixes)} unrouted prefixes"
        )

    @staticmethod
    def _has_prefix(path: str, prefixes: List[str]) -> bool:
        return any(path == prefix or path.startswith(prefix.rstrip("/") + "/") for prefix in prefixes)

    def is_unrouted_path(self, path: str) -> bool:
        return self._has_prefix(path, self.unrouted_prefixes)

    def is_admin_path(self, path: str) -> bool:
        return self._has_prefix(path, self.admin_prefixes)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        request.state.site = None

        if self.is_unrouted_path(path):
            return await call_next(request)

        registry = getattr(request.app.state, "routing_registry", None)
        if registry is None:
            logger.error("Routing registry is not available")
            raise SiteRoutingError("Routing registry is not available", error_code=ROUTING_UNAVAILABLE)

        host = request.headers.get("host")
        entry = registry.resolve(host)
        if entry is None:
            logger.debug(f"No site registered for host {host}")
            raise SiteRoutingError("Site not found", host)

        if not entry["active"] and not self.is_admin_path(path):
            logger.debug(f"Site {entry['uid']} is inactive, refusing {path}")
            raise SiteRoutingError("Site is not active", host, error_code=SITE_INACTIVE)

        request.state.site = entry
        response = await call_next(request)
        response.headers["X-Site-ID"] = entry["uid"]
        return response


def get_current_site_from_request(request: Request) -> Optional[dict]:
    """Get the routing entry bound to the request by the middleware."""
    return getattr(request.state, "site", None)
