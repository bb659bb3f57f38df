"""
Base Pydantic schemas for API responses.
"""

from typing import Optional, Any
from pydantic import BaseModel, Field


class BaseResponse(BaseModel):
    """Base response model for all API endpoints."""

    success: bool = Field(True, description="Whether the operation was successful")
    message: str = Field(description="Human-readable message describing the result")
    data: Optional[Any] = Field(None, description="Response data payload")

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "message": "Operation completed successfully",
                "data": None
            }
        }


class ErrorResponse(BaseModel):
    """Error body rendered by the error handling middleware."""

    error: bool = Field(True, description="Always true for error responses")
    error_code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable message describing the failure")
    request_id: Optional[str] = Field(None, description="Request correlation id")
    details: Optional[dict] = Field(None, description="Additional error details")

    class Config:
        json_schema_extra = {
            "example": {
                "error": True,
                "error_code": "SITE_VALIDATION_FAILED",
                "message": "A site with this hostname already exists",
                "request_id": "4f1c1b9e-6f0e-4a43-9f8e-2b0c3d7e1a11",
                "details": {"collisions": {"displayName": 0, "hostname": 1}}
            }
        }
