"""
Site activation jobs.

A job encapsulates exactly one site state transition: load the persisted
record, flip its active flag, persist it, then update the routing registry.
Jobs started on this node (initiators) also broadcast the transition so that
peer processes replay the same job against their own routing registry.
"""

import asyncio
import inspect
import logging
import time
from collections import OrderedDict
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type
from uuid import uuid4

from src.application.commands.dto import ACTIVATE_SITE, DEACTIVATE_SITE, SiteCommand
from src.application.services.cross_cutting import AuditEvent, get_application_logger
from src.domain.entities import Site
from src.domain.exceptions import SiteNotFoundError
from src.domain.interfaces import CommandChannelInterface

if TYPE_CHECKING:
    from src.application.services.site_service import SiteService

logger = logging.getLogger(__name__)

JobCallback = Callable[[Optional[BaseException], Optional[bool]], Any]


class JobStatus(str, Enum):
    """Lifecycle of a job run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SiteJob:
    """Base class for one-shot site state transitions."""

    transition_name = ""
    command_type = ""
    audit_event = AuditEvent.SYSTEM_ERROR

    def __init__(
        self,
        site_service: "SiteService",
        command_channel: Optional[CommandChannelInterface] = None,
        response_timeout: float = 0.0,
    ):
        self.site_service = site_service
        self.command_channel = command_channel
        self.response_timeout = response_timeout

        self._name: Optional[str] = None
        self._id: Optional[str] = None
        self._site: Optional[str] = None
        self._run_as_initiator = False

        self.status = JobStatus.PENDING
        self.error: Optional[str] = None
        self.peer_count = 0
        self.peer_responses: List[Dict[str, Any]] = []
        self.started_at: Optional[datetime] = None
        self.finished_at: Optional[datetime] = None

    @classmethod
    def job_name(cls, site_uid: str) -> str:
        return f"{cls.transition_name}_{site_uid}"

    def init(self, name: str, job_id: Optional[str] = None) -> "SiteJob":
        """Name the job and fix its id; remote replays pass the initiator's id."""
        self._name = name
        self._id = job_id or uuid4().hex
        return self

    def set_site(self, site_uid: str) -> "SiteJob":
        self._site = site_uid
        return self

    def set_run_as_initiator(self, run_as_initiator: bool) -> "SiteJob":
        self._run_as_initiator = bool(run_as_initiator)
        return self

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def id(self) -> Optional[str]:
        return self._id

    @property
    def site(self) -> Optional[str]:
        return self._site

    @property
    def run_as_initiator(self) -> bool:
        return self._run_as_initiator

    async def run(self, callback: Optional[JobCallback] = None) -> bool:
        """
        Perform the transition and report ``(error, result)`` to ``callback``.

        Returns True on success. Errors are delivered to the callback and then
        raised to the caller unchanged. A failing callback is logged; its error
        is raised only when the transition itself succeeded.
        """
        if self._id is None or self._site is None:
            raise RuntimeError("Job must be initialized with a name and a site before it runs")

        self.status = JobStatus.RUNNING
        self.started_at = datetime.utcnow()
        start = time.perf_counter()
        error: Optional[BaseException] = None

        logger.info(
            f"Running job {self._name} ({self._id}) as "
            f"{'initiator' if self._run_as_initiator else 'worker'}"
        )
        try:
            site = await self._transition()
            if self._run_as_initiator and self.command_channel is not None:
                await self._propagate()
        except Exception as e:
            error = e
            self.status = JobStatus.FAILED
            self.error = str(e)
            get_application_logger().log_error(e, self._name or "job", site=self._site, job_id=self._id)
        else:
            self.status = JobStatus.COMPLETED
            get_application_logger().log_audit_event(
                self.audit_event,
                site=site.uid,
                details={
                    "job_id": self._id,
                    "hostname": site.hostname,
                    "initiator": self._run_as_initiator,
                },
            )
        finally:
            self.finished_at = datetime.utcnow()
            get_application_logger().log_performance(
                self._name or "job",
                (time.perf_counter() - start) * 1000,
                site=self._site,
                success=error is None,
            )

        if callback is not None:
            try:
                outcome = callback(error, None if error else True)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.exception(f"Callback of job {self._name} ({self._id}) failed: {e}")
                if error is None:
                    raise

        if error is not None:
            raise error
        return True

    async def _transition(self) -> Site:
        site = await self.site_service.load_persisted(self._site)
        if site is None:
            raise SiteNotFoundError(site_uid=self._site)

        self.apply(site)
        # persistence write must land before the registry sees the new state
        await self.site_service.save_site(site)
        self.register(site)
        return site

    async def _propagate(self) -> None:
        command = SiteCommand(type=self.command_type, site=self._site, jobId=self._id).to_wire()
        self.peer_count = await self.command_channel.broadcast(command)

        expected = self.peer_count if self.response_timeout > 0 else 0
        self.peer_responses = await self.command_channel.collect_responses(
            self._id, expected, self.response_timeout
        )
        for response in self.peer_responses:
            if response.get("error"):
                logger.warning(
                    f"Peer {response.get('origin')} failed job {self._name} ({self._id}): "
                    f"{response['error'].strip().splitlines()[-1]}"
                )

    def apply(self, site: Site) -> None:
        raise NotImplementedError

    def register(self, site: Site) -> None:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self._id,
            "name": self._name,
            "site": self._site,
            "run_as_initiator": self._run_as_initiator,
            "status": self.status.value,
            "error": self.error,
            "peer_count": self.peer_count,
            "peer_responses": list(self.peer_responses),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class SiteActivateJob(SiteJob):
    """Marks a site active so that all of its routes are available."""

    transition_name = "ACTIVATE_SITE"
    command_type = ACTIVATE_SITE
    audit_event = AuditEvent.SITE_ACTIVATED

    def apply(self, site: Site) -> None:
        site.activate()

    def register(self, site: Site) -> None:
        self.site_service.routing_registry.activate_site(site.to_routing_config())


class SiteDeactivateJob(SiteJob):
    """Marks a site inactive so that only its admin routes are available."""

    transition_name = "DEACTIVATE_SITE"
    command_type = DEACTIVATE_SITE
    audit_event = AuditEvent.SITE_DEACTIVATED

    def apply(self, site: Site) -> None:
        site.deactivate()

    def register(self, site: Site) -> None:
        self.site_service.routing_registry.deactivate_site(site.to_routing_config())


JOB_TYPES: Dict[str, Type[SiteJob]] = {
    ACTIVATE_SITE: SiteActivateJob,
    DEACTIVATE_SITE: SiteDeactivateJob,
}


class JobRunner:
    """
    Schedules jobs on the running event loop and remembers recent outcomes.

    Only the last ``history_limit`` finished jobs are kept.
    """

    def __init__(self, history_limit: int = 100):
        self.history_limit = history_limit
        self._jobs: "OrderedDict[str, SiteJob]" = OrderedDict()
        self._tasks: Dict[str, asyncio.Task] = {}

    def submit(self, job: SiteJob, callback: Optional[JobCallback] = None) -> str:
        """Start a job in the background and return its id."""
        task = asyncio.get_running_loop().create_task(self._execute(job, callback))
        self._jobs[job.id] = job
        self._tasks[job.id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job.id, None))
        self._trim()
        return job.id

    async def _execute(self, job: SiteJob, callback: Optional[JobCallback]) -> bool:
        try:
            return await job.run(callback)
        except Exception:
            # run() already recorded the job error or logged the callback error
            return False

    async def wait_for(self, job_id: str) -> Optional[SiteJob]:
        """Wait until a submitted job has finished and return it."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self._jobs.get(job_id)

    def get(self, job_id: str) -> Optional[SiteJob]:
        return self._jobs.get(job_id)

    def running(self) -> List[SiteJob]:
        return [job for job in self._jobs.values() if job.status == JobStatus.RUNNING]

    def _trim(self) -> None:
        while len(self._jobs) > self.history_limit:
            for job_id, job in self._jobs.items():
                if job_id not in self._tasks:
                    del self._jobs[job_id]
                    break
            else:
                return
