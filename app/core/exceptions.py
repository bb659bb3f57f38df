"""
HTTP mapping for domain exceptions of the Multisite Platform API.

Translates domain errors into HTTP status codes for the error handling
middleware.
"""

from typing import Optional

from fastapi import status

from src.domain.exceptions import (
    ConfigurationError,
    DomainError,
    SiteNotFoundError,
    SitePreconditionError,
    SiteValidationError,
    TransportError,
)

SITE_INACTIVE = "SITE_INACTIVE"
ROUTING_UNAVAILABLE = "ROUTING_UNAVAILABLE"


class SiteRoutingError(DomainError):
    """Raised when a request host cannot be served."""

    def __init__(self, message: str, host: Optional[str] = None, error_code: str = "SITE_NOT_FOUND"):
        super().__init__(message, error_code=error_code, details={"host": host})


# Status code mappings for different exception types
EXCEPTION_STATUS_CODES = {
    SiteValidationError: status.HTTP_409_CONFLICT,
    SiteNotFoundError: status.HTTP_404_NOT_FOUND,
    SitePreconditionError: status.HTTP_409_CONFLICT,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    TransportError: status.HTTP_502_BAD_GATEWAY,
    DomainError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_exception_status_code(exc: DomainError) -> int:
    """
    Get the appropriate HTTP status code for an exception.

    Args:
        exc: The exception instance

    Returns:
        HTTP status code
    """
    if isinstance(exc, SiteRoutingError):
        if exc.error_code in (SITE_INACTIVE, ROUTING_UNAVAILABLE):
            return status.HTTP_503_SERVICE_UNAVAILABLE
        return status.HTTP_404_NOT_FOUND
    return EXCEPTION_STATUS_CODES.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
