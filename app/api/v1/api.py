"""
Main API router for v1 endpoints.

Includes all endpoint routers and organizes API structure.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import health, sites

# Create main API router
api_router = APIRouter()

# Include endpoint routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(sites.router, prefix="/admin", tags=["sites", "admin"])
api_router.include_router(sites.public_router, tags=["sites"])
