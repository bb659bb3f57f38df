"""
Dependency injection functions for FastAPI.

This module provides dependency injection functions for the services the
application lifespan places on ``app.state``.
"""

from fastapi import HTTPException, Request
import logging

from app.core.config import Settings
from app.services.command_service import BaseCommandChannel
from app.services.routing import RoutingRegistry
from src.application.services.site_service import SiteService


logger = logging.getLogger(__name__)


def _from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        logger.error(f"{label} requested before startup completed")
        raise HTTPException(
            status_code=503,
            detail=f"{label} is not available"
        )
    return service


def get_site_service(request: Request) -> SiteService:
    """
    Get the site service instance from app state.

    Args:
        request: FastAPI request object

    Returns:
        SiteService: The site service instance

    Raises:
        HTTPException: If the site service is not available
    """
    return _from_state(request, "site_service", "Site service")


def get_routing_registry(request: Request) -> RoutingRegistry:
    """Get the routing registry instance from app state."""
    return _from_state(request, "routing_registry", "Routing registry")


def get_command_channel(request: Request) -> BaseCommandChannel:
    return _from_state(request, "command_channel", "Command channel")


def get_app_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return _from_state(request, "settings", "Settings")
