"""
Domain Exceptions

Custom exceptions for the site management domain layer.
These exceptions represent business rule violations and collaborator failures.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base exception for all domain-related errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class SiteValidationError(DomainError):
    """Raised when a display name or hostname is already used by another site."""

    def __init__(
        self,
        message: str,
        display_name: Optional[str] = None,
        hostname: Optional[str] = None,
        collisions: Optional[Dict[str, int]] = None,
    ):
        details = {
            "display_name": display_name,
            "hostname": hostname,
            "collisions": collisions or {},
        }
        super().__init__(
            message=message, error_code="SITE_VALIDATION_FAILED", details=details
        )

    @property
    def fields(self) -> list:
        """Names of the fields that collided."""
        return [field for field, count in self.details["collisions"].items() if count]


class SiteNotFoundError(DomainError):
    """Raised when a site uid does not resolve to a persisted record."""

    def __init__(self, message: str = "Site not found", site_uid: Optional[str] = None):
        super().__init__(
            message=message, error_code="SITE_NOT_FOUND", details={"site_uid": site_uid}
        )


class SitePreconditionError(DomainError):
    """Raised when a site is not in the state required by a traffic change."""

    def __init__(
        self,
        message: str,
        site_uid: Optional[str] = None,
        required_active: Optional[bool] = None,
    ):
        details = {"site_uid": site_uid, "required_active": required_active}
        super().__init__(
            message=message, error_code="SITE_PRECONDITION_FAILED", details=details
        )


class ConfigurationError(DomainError):
    """Raised when process configuration cannot support the requested mode."""

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(
            message=message, error_code="CONFIGURATION_ERROR", details={"setting": setting}
        )


class TransportError(DomainError):
    """Raised when the document store or the command channel fails."""

    def __init__(
        self,
        message: str,
        backend: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        details = {"backend": backend, "operation": operation}
        super().__init__(message=message, error_code="TRANSPORT_ERROR", details=details)
