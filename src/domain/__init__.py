"""
Domain Layer

The domain layer contains the core site management rules.
It is independent of external concerns like databases, message brokers and HTTP.
"""

# Value Objects
from .value_objects import (
    GLOBAL_SITE,
    NO_SITE,
    SITE_FIELD,
    RoutingState,
    SiteKind,
    SiteRef,
    host_from_url,
    host_with_protocol,
    normalize_hostname,
    site_of,
)

# Entities
from .entities import (
    Site,
    SiteMap,
)

# Collaborator Interfaces
from .interfaces import (
    CaseInsensitive,
    CommandChannelInterface,
    CommandHandler,
    DocumentStoreInterface,
    NotEqual,
    RoutingRegistryInterface,
)

# Domain Exceptions
from .exceptions import (
    ConfigurationError,
    DomainError,
    SiteNotFoundError,
    SitePreconditionError,
    SiteValidationError,
    TransportError,
)

__all__ = [
    # Value Objects
    "GLOBAL_SITE",
    "NO_SITE",
    "SITE_FIELD",
    "RoutingState",
    "SiteKind",
    "SiteRef",
    "host_from_url",
    "host_with_protocol",
    "normalize_hostname",
    "site_of",
    # Entities
    "Site",
    "SiteMap",
    # Collaborator Interfaces
    "CaseInsensitive",
    "CommandChannelInterface",
    "CommandHandler",
    "DocumentStoreInterface",
    "NotEqual",
    "RoutingRegistryInterface",
    # Domain Exceptions
    "ConfigurationError",
    "DomainError",
    "SiteNotFoundError",
    "SitePreconditionError",
    "SiteValidationError",
    "TransportError",
]
