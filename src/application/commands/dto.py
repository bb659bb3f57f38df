"""
Command DTOs for write operations on sites.

Data Transfer Objects for operator commands and for the wire messages
exchanged between processes over the command channel.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, validator

ACTIVATE_SITE = "activate_site"
DEACTIVATE_SITE = "deactivate_site"
SITE_COMMAND_TYPES = (ACTIVATE_SITE, DEACTIVATE_SITE)


class CreateSiteCommand(BaseModel):
    """Command to create a new site."""

    display_name: str = Field(
        ..., min_length=1, max_length=255, alias="displayName", description="Site display name"
    )
    hostname: str = Field(..., min_length=1, max_length=255, description="Hostname served by the site")

    @validator("hostname")
    def validate_hostname(cls, v):
        """Hostnames carry no scheme, path or whitespace."""
        v = v.strip().lower()
        if "://" in v or "/" in v or " " in v:
            raise ValueError("Hostname must not contain a scheme, path or spaces")
        return v

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "displayName": "Acme",
                "hostname": "acme.example.com",
            }
        }


class UpdateSiteCommand(BaseModel):
    """Command to rename a site or move it to another hostname."""

    display_name: Optional[str] = Field(None, min_length=1, max_length=255, alias="displayName")
    hostname: Optional[str] = Field(None, min_length=1, max_length=255)

    @validator("hostname")
    def validate_hostname(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if "://" in v or "/" in v or " " in v:
            raise ValueError("Hostname must not contain a scheme, path or spaces")
        return v

    class Config:
        populate_by_name = True


class SiteCommand(BaseModel):
    """Cross-process command asking a peer to replay a site transition."""

    type: str = Field(..., description="activate_site or deactivate_site")
    site: str = Field(..., min_length=1, description="Site unique id")
    job_id: str = Field(..., min_length=1, alias="jobId", description="Correlation id of the initiating job")

    @validator("type")
    def validate_type(cls, v):
        if v not in SITE_COMMAND_TYPES:
            raise ValueError(f"Command type must be one of: {', '.join(SITE_COMMAND_TYPES)}")
        return v

    class Config:
        populate_by_name = True

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class CommandResponse(BaseModel):
    """Answer sent back to the initiator of a command."""

    error: Optional[str] = Field(None, description="Formatted traceback when the job failed")
    result: bool = Field(False, description="Whether the job succeeded")
