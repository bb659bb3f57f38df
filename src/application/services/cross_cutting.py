"""
Cross-cutting concern services for site management.

Provides structured operation, performance and audit logging used by the
application layer around site lifecycle changes.
"""

import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class LogLevel(str, Enum):
    """Application log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AuditEvent(str, Enum):
    """Types of audit events."""
    SITE_CREATED = "site_created"
    SITE_UPDATED = "site_updated"
    SITE_ACTIVATED = "site_activated"
    SITE_DEACTIVATED = "site_deactivated"
    SITE_TRAFFIC_STARTED = "site_traffic_started"
    SITE_TRAFFIC_STOPPED = "site_traffic_stopped"
    COMMAND_RECEIVED = "command_received"
    COMMAND_DROPPED = "command_dropped"
    VALIDATION_ERROR = "validation_error"
    SYSTEM_ERROR = "system_error"


class ApplicationLogger:
    """
    Structured logging service for application layer operations.

    Provides consistent logging format with audit trail capabilities
    and performance monitoring.
    """

    def __init__(self, logger_name: str = "multisite_app"):
        self.logger = logging.getLogger(logger_name)

    def log_operation(
        self,
        operation: str,
        site: Optional[str] = None,
        level: LogLevel = LogLevel.INFO,
        **kwargs
    ) -> None:
        """
        Log application operation with structured data.

        Args:
            operation: Operation being performed
            site: Site uid the operation applies to
            level: Log level
            **kwargs: Additional structured data
        """
        message = f"Operation: {operation} | Site: {site or '-'}"
        if kwargs:
            message += f" | Data: {json.dumps(kwargs, default=str)}"

        self.logger.log(logging.getLevelName(level.value), message)

    def log_performance(
        self,
        operation: str,
        duration_ms: float,
        site: Optional[str] = None,
        success: bool = True,
    ) -> None:
        """Log how long an operation took."""
        level = LogLevel.INFO if success else LogLevel.WARNING
        message = (
            f"Performance: {operation} | Site: {site or '-'} | "
            f"Duration: {round(duration_ms, 2)}ms | Success: {success}"
        )

        if duration_ms > 1000:
            level = LogLevel.WARNING
            message += " | SLOW_OPERATION"

        self.logger.log(logging.getLevelName(level.value), message)

    def log_audit_event(
        self,
        event: AuditEvent,
        site: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log audit events for site lifecycle changes.

        Args:
            event: Type of audit event
            site: Site uid being acted upon
            details: Additional audit details
        """
        audit_data = {
            "audit_event": event.value,
            "site": site,
            "timestamp": datetime.utcnow().isoformat(),
            "details": details or {},
        }

        message = f"AUDIT: {event.value} | Site: {site or '-'}"
        if details:
            message += f" | Details: {json.dumps(details, default=str)}"

        # All audit events are logged as INFO level
        self.logger.info(message, extra={"audit": audit_data})

    def log_error(
        self,
        error: Exception,
        operation: str,
        site: Optional[str] = None,
        **kwargs
    ) -> None:
        """Log application errors with context."""
        message = f"ERROR: {operation} | Site: {site or '-'} | {type(error).__name__}: {str(error)}"
        if kwargs:
            message += f" | Data: {json.dumps(kwargs, default=str)}"
        self.logger.error(message)


app_logger = ApplicationLogger()


def get_application_logger() -> ApplicationLogger:
    """Get application logger instance - useful for dependency injection."""
    return app_logger
