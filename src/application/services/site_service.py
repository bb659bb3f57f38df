"""
Site service for the multisite platform.

Orchestrates persistence of site records, uniqueness validation, the
activation job runner and the routing registry that dispatches requests
by hostname.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import uuid4

from src.application.commands.dto import ACTIVATE_SITE, DEACTIVATE_SITE
from src.application.jobs.site_jobs import JOB_TYPES, JobCallback, JobRunner, SiteJob
from src.application.services.cross_cutting import AuditEvent, get_application_logger
from src.domain.entities import Site, SiteMap
from src.domain.exceptions import (
    ConfigurationError,
    SiteNotFoundError,
    SitePreconditionError,
    SiteValidationError,
)
from src.domain.interfaces import (
    CaseInsensitive,
    CommandChannelInterface,
    DocumentStoreInterface,
    NotEqual,
    RoutingRegistryInterface,
)
from src.domain.value_objects import GLOBAL_SITE, SiteRef, host_from_url, host_with_protocol

logger = logging.getLogger(__name__)

SITE_COLLECTION = "site"
ID_FIELD = "_id"


@dataclass(frozen=True)
class MultisiteOptions:
    """Process-wide configuration consumed by the site service."""

    site_name: str = "multisite"
    site_root: str = "http://localhost:8080"
    multisite_enabled: bool = False
    global_root: Optional[str] = None
    ssl_enabled: bool = False
    collection: str = SITE_COLLECTION
    command_response_timeout: float = 0.0

    @classmethod
    def from_settings(cls, settings: Any) -> "MultisiteOptions":
        return cls(
            site_name=settings.SITE_NAME,
            site_root=settings.SITE_ROOT,
            multisite_enabled=settings.MULTISITE_ENABLED,
            global_root=settings.MULTISITE_GLOBAL_ROOT,
            ssl_enabled=settings.SSL_ENABLED,
            collection=settings.SITE_COLLECTION,
            command_response_timeout=settings.COMMAND_RESPONSE_TIMEOUT_SECONDS,
        )


class SiteService:
    """Service for performing site specific operations."""

    def __init__(
        self,
        document_store: DocumentStoreInterface,
        routing_registry: RoutingRegistryInterface,
        options: Optional[MultisiteOptions] = None,
        command_channel: Optional[CommandChannelInterface] = None,
        job_runner: Optional[JobRunner] = None,
    ):
        self.document_store = document_store
        self.routing_registry = routing_registry
        self.options = options or MultisiteOptions()
        self.command_channel = command_channel
        self.job_runner = job_runner or JobRunner()
        self.audit = get_application_logger()

    @property
    def collection(self) -> str:
        return self.options.collection

    # Repository

    def global_site(self) -> Site:
        """Synthesized default site; never persisted."""
        return Site.global_site(self.options.site_name, self.options.site_root)

    async def get_by_uid(self, uid: Optional[str]) -> Optional[Site]:
        """
        Load a site by its unique id.

        An empty or global id returns the synthesized global site without
        touching storage.
        """
        if SiteRef.parse(uid).is_global:
            return self.global_site()
        return await self.load_persisted(uid)

    async def load_persisted(self, uid: str) -> Optional[Site]:
        """Load the stored record for ``uid``; the global site is never stored."""
        record = await self.document_store.load_by_values(self.collection, {"uid": uid})
        return Site.from_record(record) if record else None

    async def get_all(self) -> List[Site]:
        records = await self.document_store.query(self.collection, {})
        return [Site.from_record(record) for record in records]

    async def get_active(self) -> List[Site]:
        records = await self.document_store.query(self.collection, {"active": True})
        return [Site.from_record(record) for record in records]

    async def get_inactive(self) -> List[Site]:
        records = await self.document_store.query(self.collection, {"active": False})
        return [Site.from_record(record) for record in records]

    async def get_site_map(self) -> SiteMap:
        """Get all sites segmented by active status."""
        active, inactive = await asyncio.gather(self.get_active(), self.get_inactive())
        return SiteMap(active=active, inactive=inactive)

    async def get_name_by_uid(self, uid: Optional[str]) -> str:
        """Display name for a uid; ``"global"`` for the global site, ``""`` if unknown."""
        if SiteRef.parse(uid).is_global:
            return GLOBAL_SITE

        try:
            records = await self.document_store.query(self.collection, {"uid": uid})
        except Exception as e:
            logger.error(f"Failed to load site name for {uid}: {e}")
            raise
        return records[0].get("displayName", "") if records else ""

    async def exists(self, uid: str) -> bool:
        return await self.document_store.exists(self.collection, {"uid": uid})

    async def save_site(self, site: Site) -> Site:
        saved = await self.document_store.save(self.collection, site.to_record())
        site.record_id = saved.get(ID_FIELD, site.record_id)
        return site

    # Uniqueness validation

    async def count_collisions(
        self, display_name: str, hostname: str, exclude_id: Optional[str] = None
    ) -> Dict[str, int]:
        """
        Count existing sites using a display name or a hostname.

        Display names are compared anchored and case-insensitively. The record
        with ``exclude_id`` is left out of both counts.
        """

        def where(clause: Dict[str, Any]) -> Dict[str, Any]:
            if exclude_id:
                clause[ID_FIELD] = NotEqual(exclude_id)
            return clause

        display_count, hostname_count = await asyncio.gather(
            self.document_store.count(
                self.collection, where({"displayName": CaseInsensitive(display_name.strip())})
            ),
            self.document_store.count(
                self.collection, where({"hostname": hostname.strip().lower()})
            ),
        )
        return {"displayName": display_count, "hostname": hostname_count}

    async def is_taken(
        self, display_name: str, hostname: str, exclude_id: Optional[str] = None
    ) -> bool:
        counts = await self.count_collisions(display_name, hostname, exclude_id)
        return any(count > 0 for count in counts.values())

    async def _ensure_available(
        self, display_name: str, hostname: str, exclude_id: Optional[str]
    ) -> None:
        counts = await self.count_collisions(display_name, hostname, exclude_id)
        if any(count > 0 for count in counts.values()):
            taken = [field for field, count in counts.items() if count > 0]
            self.audit.log_audit_event(
                AuditEvent.VALIDATION_ERROR,
                details={"displayName": display_name, "hostname": hostname, "taken": taken},
            )
            raise SiteValidationError(
                f"A site with this {' and '.join(taken)} already exists",
                display_name=display_name,
                hostname=hostname,
                collisions=counts,
            )

    # Creation and update

    async def create(
        self, display_name: str, hostname: str, exclude_id: Optional[str] = None
    ) -> Site:
        """
        Create a site and save it to the database.

        New sites always start inactive. Nothing is written when the display
        name or hostname is already taken.
        """
        site = Site(uid=uuid4().hex, display_name=display_name, hostname=hostname, active=False)
        await self._ensure_available(site.display_name, site.hostname, exclude_id)

        await self.save_site(site)
        logger.info(f"Site created: {site.uid} ({site.hostname})")
        self.audit.log_audit_event(
            AuditEvent.SITE_CREATED,
            site=site.uid,
            details={"displayName": site.display_name, "hostname": site.hostname},
        )
        return site

    async def update(
        self,
        uid: str,
        display_name: Optional[str] = None,
        hostname: Optional[str] = None,
    ) -> Site:
        """Rename a site or move it to another hostname."""
        site = await self.load_persisted(uid)
        if site is None:
            raise SiteNotFoundError(site_uid=uid)

        old_hostname = site.hostname
        site.rename(display_name if display_name is not None else site.display_name)
        site.move_to(hostname if hostname is not None else site.hostname)
        await self._ensure_available(site.display_name, site.hostname, site.record_id)

        await self.save_site(site)

        if site.hostname != old_hostname and self.routing_registry.get_site(old_hostname):
            self.routing_registry.unload_site(old_hostname)
            self.routing_registry.load_site(site.to_routing_config())

        self.audit.log_audit_event(
            AuditEvent.SITE_UPDATED,
            site=site.uid,
            details={"displayName": site.display_name, "hostname": site.hostname},
        )
        return site

    # Activation jobs

    def build_job(
        self,
        command_type: str,
        site_uid: str,
        run_as_initiator: bool,
        job_id: Optional[str] = None,
    ) -> SiteJob:
        """Construct an initialized job for ``activate_site`` or ``deactivate_site``."""
        job_class = JOB_TYPES[command_type]
        job = job_class(
            self,
            command_channel=self.command_channel,
            response_timeout=self.options.command_response_timeout,
        )
        job.set_run_as_initiator(run_as_initiator)
        job.init(job_class.job_name(site_uid), job_id)
        job.set_site(site_uid)
        return job

    def activate_site(self, site_uid: str, callback: Optional[JobCallback] = None) -> str:
        """
        Run a job to activate a site so that all of its routes are available.

        Returns the job id at once; the outcome reaches ``callback``.
        """
        job = self.build_job(ACTIVATE_SITE, site_uid, run_as_initiator=True)
        return self.job_runner.submit(job, callback)

    def deactivate_site(self, site_uid: str, callback: Optional[JobCallback] = None) -> str:
        """Run a job to set a site inactive so that only the admin routes are available."""
        job = self.build_job(DEACTIVATE_SITE, site_uid, run_as_initiator=True)
        return self.job_runner.submit(job, callback)

    async def wait_for_job(self, job_id: str) -> Optional[SiteJob]:
        return await self.job_runner.wait_for(job_id)

    def get_job(self, job_id: str) -> Optional[SiteJob]:
        return self.job_runner.get(job_id)

    # Traffic control

    async def start_accepting_site_traffic(self, site_uid: str) -> Site:
        """Turn on user facing routes for a site that is already active in storage."""
        site = await self.load_persisted(site_uid)
        if site is None:
            raise SiteNotFoundError(site_uid=site_uid)
        if not site.active:
            raise SitePreconditionError(
                "Site not active", site_uid=site_uid, required_active=True
            )

        self.routing_registry.activate_site(site.to_routing_config())
        self.audit.log_audit_event(AuditEvent.SITE_TRAFFIC_STARTED, site=site.uid)
        return site

    async def stop_accepting_site_traffic(self, site_uid: str) -> Site:
        """Turn off user facing routes for a site that is already inactive in storage."""
        site = await self.load_persisted(site_uid)
        if site is None:
            raise SiteNotFoundError(site_uid=site_uid)
        if site.active:
            raise SitePreconditionError(
                "Site not deactivated", site_uid=site_uid, required_active=False
            )

        self.routing_registry.deactivate_site(site.to_routing_config())
        self.audit.log_audit_event(AuditEvent.SITE_TRAFFIC_STOPPED, site=site.uid)
        return site

    # Bootstrap

    async def init_sites(self) -> bool:
        """
        Load all sites into the routing registry.

        Inactive sites are registered for admin routes only. The global entry
        uses the root hostname and stays fully active for single tenant
        deployments; with multisite on it uses the configured global hostname
        and serves admin routes only.
        """
        if self.options.multisite_enabled and not self.options.global_root:
            raise ConfigurationError(
                "A Global Hostname must be configured with multisite turned on.",
                setting="MULTISITE_GLOBAL_ROOT",
            )

        sites = await self.get_all()
        for site in sites:
            self.routing_registry.load_site(site.to_routing_config())

        if self.options.multisite_enabled:
            global_host = host_from_url(self.options.global_root)
        else:
            global_host = host_from_url(self.options.site_root)
        self.routing_registry.load_site(
            {
                "displayName": GLOBAL_SITE,
                "uid": GLOBAL_SITE,
                "hostname": global_host,
                "active": not self.options.multisite_enabled,
            }
        )

        logger.info(f"Loaded {len(sites)} sites into the routing registry")
        self.audit.log_operation(
            "init_sites",
            site=GLOBAL_SITE,
            loaded=len(sites),
            multisite=self.options.multisite_enabled,
            global_host=global_host,
        )
        return True

    def host_with_protocol(self, hostname: str) -> str:
        return host_with_protocol(hostname, self.options.ssl_enabled)
