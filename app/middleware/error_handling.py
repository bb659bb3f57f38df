"""
Error handling middleware for the Multisite Platform API.

Turns domain errors and unexpected failures into JSON error bodies with a
request id, and logs them with request context.
"""

import logging
import traceback
import uuid
from datetime import datetime
from typing import Any, Dict, Optional, Union

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.exceptions import get_exception_status_code
from src.domain.exceptions import DomainError

logger = logging.getLogger(__name__)


class ErrorResponse:
    """Standardized error response structure."""

    def __init__(
        self,
        error_code: str,
        message: str,
        request_id: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.error_code = error_code
        self.message = message
        self.request_id = request_id
        self.timestamp = datetime.utcnow().isoformat()
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self, include_details: bool = True) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        response = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "request_id": self.request_id,
            "timestamp": self.timestamp
        }
        if include_details and self.details:
            response["details"] = self.details
        return response

    def to_response(self, include_details: bool = True) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content=self.to_dict(include_details=include_details)
        )


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _include_details(status_code: int, include_in_prod: bool = False) -> bool:
    # client errors always carry details; server errors only in debug
    if settings.DEBUG or 400 <= status_code < 500:
        return True
    return include_in_prod


def domain_error_response(request: Request, exc: DomainError, include_in_prod: bool = False) -> JSONResponse:
    """Render a DomainError with the status code mapped for its type."""
    status_code = get_exception_status_code(exc)
    logger.log(
        logging.ERROR if status_code >= 500 else logging.WARNING,
        f"Domain error: {exc.error_code}",
        extra={
            "exception_type": type(exc).__name__,
            "error_code": exc.error_code,
            "details": exc.details,
            "method": request.method,
            "url": str(request.url),
        }
    )
    error_response = ErrorResponse(
        error_code=exc.error_code or "DOMAIN_ERROR",
        message=exc.message,
        request_id=_request_id(request),
        details=exc.details,
        status_code=status_code
    )
    return error_response.to_response(_include_details(status_code, include_in_prod))


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Catches exceptions that escape the routers and middlewares below it.

    Every request gets a request id on ``request.state`` for log correlation.
    """

    def __init__(self, app, include_details_in_prod: bool = False):
        super().__init__(app)
        self.include_details_in_prod = include_details_in_prod

    async def dispatch(self, request: Request, call_next):
        request.state.request_id = str(uuid.uuid4())
        try:
            return await call_next(request)
        except DomainError as exc:
            return domain_error_response(request, exc, self.include_details_in_prod)
        except HTTPException as exc:
            return ErrorResponse(
                error_code=f"HTTP_{exc.status_code}",
                message=str(exc.detail) if exc.detail else "HTTP Error",
                request_id=request.state.request_id,
                status_code=exc.status_code
            ).to_response()
        except Exception as exc:
            logger.error(
                f"Unexpected exception: {type(exc).__name__}",
                extra={
                    "exception_type": type(exc).__name__,
                    "message": str(exc),
                    "traceback": traceback.format_exc(),
                    "method": request.method,
                    "url": str(request.url),
                }
            )
            return ErrorResponse(
                error_code="INTERNAL_SERVER_ERROR",
                message="An unexpected error occurred",
                request_id=request.state.request_id,
                details={"exception_type": type(exc).__name__} if settings.DEBUG else {},
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
            ).to_response(_include_details(500, self.include_details_in_prod))


def create_exception_handlers() -> Dict[Union[int, type], Any]:
    """
    Create a dictionary of exception handlers for FastAPI.

    Returns:
        Dictionary mapping exception types to handler functions
    """

    async def domain_exception_handler(request: Request, exc: DomainError):
        return domain_error_response(request, exc)

    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="Request validation failed",
            request_id=_request_id(request),
            details={"validation_errors": jsonable_encoder(exc.errors())},
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        ).to_response(include_details=True)

    async def http_exception_handler(request: Request, exc: HTTPException):
        if isinstance(exc.detail, dict):
            error_code = exc.detail.get("error_code", f"HTTP_{exc.status_code}")
            message = exc.detail.get("message", "HTTP Error")
            details = exc.detail.get("details")
        else:
            error_code = f"HTTP_{exc.status_code}"
            message = str(exc.detail) if exc.detail else "HTTP Error"
            details = None
        return ErrorResponse(
            error_code=error_code,
            message=message,
            request_id=_request_id(request),
            details=details,
            status_code=exc.status_code
        ).to_response(_include_details(exc.status_code))

    return {
        DomainError: domain_exception_handler,
        RequestValidationError: validation_exception_handler,
        HTTPException: http_exception_handler,
    }
