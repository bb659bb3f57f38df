"""
Domain Value Objects

Immutable value objects for site identity and routing state.
Value objects are compared by their value, not identity.
"""

from enum import Enum
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlsplit, urlunsplit


GLOBAL_SITE = "global"  # default configuration, never persisted
NO_SITE = "no-site"  # an object that carries no site at all
SITE_FIELD = "site"


class SiteKind(str, Enum):
    """Tag distinguishing the synthesized global site from tenant sites."""

    GLOBAL = "global"
    TENANT = "tenant"


class RoutingState(str, Enum):
    """Where a site stands from the routing registry's point of view."""

    UNREGISTERED = "unregistered"
    REGISTERED_INACTIVE = "registered_inactive"
    REGISTERED_ACTIVE = "registered_active"


class SiteRef:
    """
    Immutable reference to either the global site or one tenant site.

    Empty values and the ``"global"`` literal both parse to the global
    reference, so comparison and defaulting never need sentinel checks.
    """

    __slots__ = ("_kind", "_uid")

    def __init__(self, kind: SiteKind, uid: Optional[str] = None):
        if kind == SiteKind.TENANT and (not uid or uid == GLOBAL_SITE):
            raise ValueError("Tenant site reference requires a non-global uid")
        self._kind = kind
        self._uid = GLOBAL_SITE if kind == SiteKind.GLOBAL else uid

    @classmethod
    def global_site(cls) -> "SiteRef":
        return cls(SiteKind.GLOBAL)

    @classmethod
    def tenant(cls, uid: str) -> "SiteRef":
        return cls(SiteKind.TENANT, uid)

    @classmethod
    def parse(cls, value: Union["SiteRef", str, None]) -> "SiteRef":
        """Build a reference from a raw site id, defaulting to global."""
        if isinstance(value, SiteRef):
            return value
        if not value or value == GLOBAL_SITE:
            return cls.global_site()
        return cls.tenant(value)

    @property
    def kind(self) -> SiteKind:
        return self._kind

    @property
    def uid(self) -> str:
        return self._uid

    @property
    def is_global(self) -> bool:
        return self._kind == SiteKind.GLOBAL

    @staticmethod
    def is_not_set_or_equal(
        actual: Union["SiteRef", str, None], expected: Union["SiteRef", str, None]
    ) -> bool:
        """True when ``actual`` is unset or refers to the same site as ``expected``."""
        if not actual:
            return True
        return SiteRef.parse(actual) == SiteRef.parse(expected)

    def __eq__(self, other) -> bool:
        if isinstance(other, str) or other is None:
            other = SiteRef.parse(other)
        if not isinstance(other, SiteRef):
            return False
        return self._kind == other._kind and self._uid == other._uid

    def __hash__(self) -> int:
        return hash((self._kind, self._uid))

    def __bool__(self) -> bool:
        return True

    def __str__(self) -> str:
        return self._uid

    def __repr__(self) -> str:
        return f"SiteRef({self._kind.value}, {self._uid!r})"


def site_of(obj: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Return the site field of a record, or NO_SITE when there is no record."""
    if not obj:
        return NO_SITE
    return obj.get(SITE_FIELD)


def normalize_hostname(hostname: str) -> str:
    """Lower-case and trim a hostname for storage and registry keys."""
    if hostname is None or not hostname.strip():
        raise ValueError("Hostname cannot be empty")
    return hostname.strip().lower()


def host_from_url(url: str) -> str:
    """Extract ``host[:port]`` from a configured root URL."""
    if "//" not in url:
        url = "//" + url
    return urlsplit(url).netloc.lower()


def host_with_protocol(hostname: str, ssl_enabled: bool = False) -> str:
    """Attach the configured protocol to a hostname, without a trailing slash."""
    if not hostname.startswith("http"):
        hostname = "//" + hostname
    parts = urlsplit(hostname)
    scheme = "https" if ssl_enabled else "http"
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment)).rstrip("/")
