"""
Site administration endpoints.

Create, edit and list sites, and start activation or deactivation jobs.
Operators poll the job endpoint for the outcome of a transition.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.dependencies import get_command_channel, get_routing_registry, get_site_service
from app.middleware.site_routing import get_current_site_from_request
from app.schemas.sites import (
    CurrentSiteResponse,
    JobAcceptedResponse,
    JobStatusResponse,
    RoutingTableResponse,
    SiteMapResponse,
    SiteResponse,
    SiteSchema,
)
from app.services.command_service import BaseCommandChannel
from app.services.routing import RoutingRegistry
from src.application.commands.dto import CreateSiteCommand, UpdateSiteCommand
from src.application.services.site_service import SiteService
from src.domain.exceptions import SiteNotFoundError
from src.domain.value_objects import SiteRef

logger = logging.getLogger(__name__)

router = APIRouter()
public_router = APIRouter()


@router.get("/sites", response_model=SiteMapResponse)
async def list_sites(site_service: SiteService = Depends(get_site_service)):
    """List all sites segmented by active status."""
    site_map = await site_service.get_site_map()
    return SiteMapResponse.from_site_map(site_map)


@router.post("/sites", response_model=SiteResponse, status_code=status.HTTP_201_CREATED)
async def create_site(
    command: CreateSiteCommand,
    site_service: SiteService = Depends(get_site_service),
):
    """
    Create a new, inactive site.

    Fails with 409 when the display name or the hostname is already used by
    another site, regardless of case.
    """
    site = await site_service.create(command.display_name, command.hostname)
    return SiteResponse(
        success=True,
        message=f"Site {site.display_name} created",
        site=SiteSchema.from_site(site),
    )


@router.get("/sites/{uid}", response_model=SiteResponse)
async def get_site(uid: str, site_service: SiteService = Depends(get_site_service)):
    site = await site_service.get_by_uid(uid)
    if site is None:
        raise SiteNotFoundError(site_uid=uid)
    return SiteResponse(success=True, message="Site found", site=SiteSchema.from_site(site))


@router.patch("/sites/{uid}", response_model=SiteResponse)
async def update_site(
    uid: str,
    command: UpdateSiteCommand,
    site_service: SiteService = Depends(get_site_service),
):
    """Rename a site or move it to another hostname."""
    if SiteRef.parse(uid).is_global:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The global site is configured through settings"
        )
    site = await site_service.update(uid, command.display_name, command.hostname)
    return SiteResponse(success=True, message="Site updated", site=SiteSchema.from_site(site))


async def _require_persisted(site_service: SiteService, uid: str) -> None:
    if SiteRef.parse(uid).is_global or not await site_service.exists(uid):
        raise SiteNotFoundError(site_uid=uid)


@router.post(
    "/sites/{uid}/activate",
    response_model=JobAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def activate_site(uid: str, site_service: SiteService = Depends(get_site_service)):
    """Start a job making all routes of the site available."""
    await _require_persisted(site_service, uid)
    job_id = site_service.activate_site(uid)
    logger.info(f"Activation of site {uid} scheduled as job {job_id}")
    return JobAcceptedResponse(success=True, message="Site activation started", job_id=job_id, site=uid)


@router.post(
    "/sites/{uid}/deactivate",
    response_model=JobAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def deactivate_site(uid: str, site_service: SiteService = Depends(get_site_service)):
    """Start a job restricting the site to its admin routes."""
    await _require_persisted(site_service, uid)
    job_id = site_service.deactivate_site(uid)
    logger.info(f"Deactivation of site {uid} scheduled as job {job_id}")
    return JobAcceptedResponse(success=True, message="Site deactivation started", job_id=job_id, site=uid)


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(
    job_id: str,
    site: Optional[str] = None,
    site_service: SiteService = Depends(get_site_service),
):
    """Outcome of a job; with ``site`` set, only a job for that site is returned."""
    job = site_service.get_job(job_id)
    if job is None or not SiteRef.is_not_set_or_equal(site, job.site):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Job {job_id} not found")
    return JobStatusResponse(**job.to_dict())


@public_router.get("/site", response_model=CurrentSiteResponse)
async def current_site(request: Request):
    """Site resolved for the request host."""
    entry = get_current_site_from_request(request)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")
    return CurrentSiteResponse(
        uid=entry["uid"],
        displayName=entry.get("displayName"),
        hostname=entry["hostname"],
        active=entry["active"],
        is_global=SiteRef.parse(entry["uid"]).is_global,
    )


@router.get("/routes", response_model=RoutingTableResponse)
async def get_routing_table(
    registry: RoutingRegistry = Depends(get_routing_registry),
    channel: BaseCommandChannel = Depends(get_command_channel),
    site_service: SiteService = Depends(get_site_service),
):
    """Routing entries held by this node, with the jobs still running on it."""
    return RoutingTableResponse(
        node_id=channel.node_id,
        entries=registry.snapshot(),
        running_jobs=[job.id for job in site_service.job_runner.running()],
    )
