"""
Health check endpoints for monitoring and status verification.
"""

from fastapi import APIRouter, Depends, Request, status

from app.core.config import Settings
from app.dependencies import get_app_settings

router = APIRouter()


@router.get("/ping", status_code=status.HTTP_200_OK)
async def ping():
    """Simple ping endpoint for load balancer health checks."""
    return {"message": "pong"}


@router.get("/status", status_code=status.HTTP_200_OK)
async def get_status(request: Request, app_settings: Settings = Depends(get_app_settings)):
    """Detailed status endpoint with cluster node information."""
    channel = getattr(request.app.state, "command_channel", None)
    return {
        "status": "healthy",
        "service": app_settings.PROJECT_NAME,
        "version": app_settings.VERSION,
        "environment": app_settings.ENVIRONMENT,
        "multisite_enabled": app_settings.MULTISITE_ENABLED,
        "node_id": channel.node_id if channel is not None else None,
    }
