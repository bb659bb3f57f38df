"""
Pydantic schemas for the site administration API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.base import BaseResponse
from src.domain.entities import Site, SiteMap


class SiteSchema(BaseModel):
    """A site as exposed over the API."""

    uid: str = Field(description="Immutable unique id")
    display_name: str = Field(alias="displayName", description="Site display name")
    hostname: str = Field(description="Hostname served by the site")
    active: bool = Field(description="Whether user facing routes are served")

    class Config:
        populate_by_name = True

    @classmethod
    def from_site(cls, site: Site) -> "SiteSchema":
        return cls(
            uid=site.uid,
            displayName=site.display_name,
            hostname=site.hostname,
            active=site.active,
        )


class SiteResponse(BaseResponse):
    site: SiteSchema


class SiteMapResponse(BaseResponse):
    """Sites segmented by active status."""

    active: List[SiteSchema]
    inactive: List[SiteSchema]

    @classmethod
    def from_site_map(cls, site_map: SiteMap) -> "SiteMapResponse":
        return cls(
            success=True,
            message=f"{len(site_map.active)} active and {len(site_map.inactive)} inactive sites",
            active=[SiteSchema.from_site(site) for site in site_map.active],
            inactive=[SiteSchema.from_site(site) for site in site_map.inactive],
        )


class JobAcceptedResponse(BaseResponse):
    """Returned when a site transition job has been scheduled."""

    job_id: str
    site: str

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "message": "Site activation started",
                "job_id": "2b0c3d7e1a114f1c1b9e6f0e4a439f8e",
                "site": "8d7c2c84b5a54c8b9d1a4ffb1f1e6a0c",
            }
        }


class JobStatusResponse(BaseModel):
    """Outcome of a site transition job."""

    job_id: str
    name: Optional[str] = None
    site: Optional[str] = None
    run_as_initiator: bool = False
    status: str
    error: Optional[str] = None
    peer_count: int = 0
    peer_responses: List[Dict[str, Any]] = Field(default_factory=list)
    started_at: Optional[str] = None
    finished_at: Optional[str] = None


class CurrentSiteResponse(BaseModel):
    """Routing entry serving the request host."""

    uid: str
    display_name: Optional[str] = Field(None, alias="displayName")
    hostname: str
    active: bool
    is_global: bool

    class Config:
        populate_by_name = True


class RoutingTableResponse(BaseModel):
    """Routing registry of one node."""

    node_id: str
    entries: List[Dict[str, Any]]
    running_jobs: List[str] = Field(default_factory=list)
