"""
Multisite Platform API

FastAPI service hosting many hostname-scoped sites in one process.
Entry point for the application.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.core.config import Settings, settings
from app.middleware.error_handling import ErrorHandlingMiddleware, create_exception_handlers
from app.middleware.site_routing import SiteRoutingMiddleware
from app.services.command_service import LocalCommandBus, create_command_channel
from app.services.database import create_document_store
from app.services.routing import RoutingRegistry
from src.application.commands.handlers import register_site_command_handlers
from src.application.jobs.site_jobs import JobRunner
from src.application.services.site_service import MultisiteOptions, SiteService

logger = logging.getLogger(__name__)


def configure_logging(app_settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, app_settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_lifespan(app_settings: Settings, bus: Optional[LocalCommandBus] = None):
    """
    Build the lifespan handler wiring the site service and its collaborators.

    Startup fails when the sites cannot be loaded into the routing registry,
    for instance when multisite is on without a global hostname.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting up {app_settings.PROJECT_NAME} on node {app_settings.NODE_ID}")

        document_store = create_document_store(app_settings)
        routing_registry = RoutingRegistry(multisite_enabled=app_settings.MULTISITE_ENABLED)
        command_channel = create_command_channel(app_settings, bus)
        site_service = SiteService(
            document_store,
            routing_registry,
            options=MultisiteOptions.from_settings(app_settings),
            command_channel=command_channel,
            job_runner=JobRunner(history_limit=app_settings.JOB_HISTORY_LIMIT),
        )
        register_site_command_handlers(command_channel, site_service)

        await command_channel.start()
        try:
            await site_service.init_sites()
            logger.info(f"Routing registry holds {len(routing_registry)} entries")

            app.state.document_store = document_store
            app.state.routing_registry = routing_registry
            app.state.command_channel = command_channel
            app.state.site_service = site_service

            yield
        except Exception as e:
            logger.error(f"Failed to initialize application: {e}")
            raise
        finally:
            logger.info(f"Shutting down {app_settings.PROJECT_NAME}")
            await command_channel.stop()
            app.state.site_service = None
            app.state.routing_registry = None
            app.state.command_channel = None

    return lifespan


def create_app(app_settings: Optional[Settings] = None, bus: Optional[LocalCommandBus] = None) -> FastAPI:
    """
    Create the FastAPI application.

    ``bus`` lets several in-process applications share one command bus, which
    is how a cluster is simulated without Redis.
    """
    app_settings = app_settings or settings

    application = FastAPI(
        title=app_settings.PROJECT_NAME,
        description=app_settings.DESCRIPTION,
        version=app_settings.VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/v1/openapi.json",
        lifespan=create_lifespan(app_settings, bus)
    )
    application.state.settings = app_settings

    # innermost first: routing runs after the error handler assigned a request id
    application.add_middleware(
        SiteRoutingMiddleware,
        admin_prefixes=app_settings.ADMIN_PATH_PREFIXES,
        unrouted_prefixes=app_settings.UNROUTED_PATH_PREFIXES,
    )
    application.add_middleware(
        ErrorHandlingMiddleware,
        include_details_in_prod=False
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for exception_type, handler in create_exception_handlers().items():
        application.add_exception_handler(exception_type, handler)

    application.include_router(api_router, prefix=app_settings.API_V1_STR)

    @application.get("/health")
    async def health_check():
        """Health check endpoint."""
        basic_health = {
            "status": "healthy",
            "service": "multisite-api",
            "version": app_settings.VERSION,
            "node_id": app_settings.NODE_ID,
            "timestamp": datetime.utcnow().isoformat()
        }

        store = getattr(application.state, "document_store", None)
        registry = getattr(application.state, "routing_registry", None)
        if store is None or registry is None:
            basic_health["status"] = "starting"
            return basic_health

        store_health = await store.health_check()
        basic_health["document_store"] = store_health
        basic_health["routing_entries"] = len(registry)
        if store_health.get("status") != "healthy":
            basic_health["status"] = "degraded"
        return basic_health

    @application.get("/")
    async def root():
        """Root endpoint with basic information."""
        return {
            "message": app_settings.PROJECT_NAME,
            "version": app_settings.VERSION,
            "docs": "/api/docs"
        }

    return application


configure_logging(settings)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
