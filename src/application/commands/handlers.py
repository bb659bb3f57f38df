"""
Command handlers for site transitions replayed from peer processes.

The initiating node runs a job locally and broadcasts a command; these
handlers run the very same job on every other node and answer the
initiator with the outcome.
"""

import logging
import traceback
from typing import Any, Optional

from pydantic import ValidationError

from src.application.services.cross_cutting import AuditEvent, get_application_logger
from src.application.services.site_service import SiteService
from src.domain.interfaces import CommandChannelInterface
from src.domain.value_objects import site_of

from .dto import ACTIVATE_SITE, DEACTIVATE_SITE, CommandResponse, SiteCommand

logger = logging.getLogger(__name__)


class SiteCommandHandlers:
    """Handlers for the ``activate_site`` and ``deactivate_site`` commands."""

    def __init__(self, site_service: SiteService, command_channel: CommandChannelInterface):
        self.site_service = site_service
        self.command_channel = command_channel

    def register(self) -> None:
        """Register activate and deactivate handlers on the command channel."""
        self.command_channel.register_for_type(ACTIVATE_SITE, self.on_activate_site_command_received)
        self.command_channel.register_for_type(DEACTIVATE_SITE, self.on_deactivate_site_command_received)
        logger.info(f"Registered site command handlers on node {self.command_channel.node_id}")

    async def on_activate_site_command_received(self, command: Any) -> None:
        """Runs a site activation job when a command is received."""
        await self._replay(ACTIVATE_SITE, command)

    async def on_deactivate_site_command_received(self, command: Any) -> None:
        """Runs a site deactivation job when a command is received."""
        await self._replay(DEACTIVATE_SITE, command)

    async def _replay(self, command_type: str, command: Any) -> None:
        # Malformed payloads are dropped: the channel makes no delivery
        # guarantee, so there is nobody to answer.
        if not isinstance(command, dict):
            self._drop(command_type, command, "not an object")
            return
        try:
            parsed = SiteCommand.model_validate(command)
        except ValidationError as e:
            self._drop(command_type, command, f"{e.error_count()} validation error(s)", site_of(command))
            return
        if parsed.type != command_type:
            self._drop(command_type, command, f"unexpected type {parsed.type}", parsed.site)
            return

        get_application_logger().log_audit_event(
            AuditEvent.COMMAND_RECEIVED,
            site=parsed.site,
            details={"type": parsed.type, "job_id": parsed.job_id, "origin": command.get("origin")},
        )

        job = self.site_service.build_job(
            command_type, parsed.site, run_as_initiator=False, job_id=parsed.job_id
        )
        try:
            await job.run()
            response = CommandResponse(error=None, result=True)
        except Exception as e:
            response = CommandResponse(
                error="".join(traceback.format_exception(type(e), e, e.__traceback__)),
                result=False,
            )

        await self.command_channel.send_in_response_to(command, response.model_dump())

    def _drop(
        self, command_type: str, command: Any, reason: str, site: Optional[str] = None
    ) -> None:
        logger.error(
            f"SiteService: an invalid {command_type} command object was passed "
            f"({reason}). {command!r}"
        )
        get_application_logger().log_audit_event(
            AuditEvent.COMMAND_DROPPED, site=site, details={"type": command_type, "reason": reason}
        )


def register_site_command_handlers(
    command_channel: CommandChannelInterface, site_service: SiteService
) -> SiteCommandHandlers:
    """Build the site command handlers and register them on the channel."""
    handlers = SiteCommandHandlers(site_service, command_channel)
    handlers.register()
    return handlers
