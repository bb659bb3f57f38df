"""
Domain Entities

Rich domain entities that encapsulate business logic and maintain invariants.
A Site is one hostname-scoped tenant served by the shared process.
"""

from typing import Any, Dict, List, Optional

from .value_objects import GLOBAL_SITE, SiteRef, normalize_hostname


class Site:
    """
    Site entity persisted in the site collection.

    New sites always start inactive and must be explicitly activated.
    """

    def __init__(
        self,
        uid: str,
        display_name: str,
        hostname: str,
        active: bool = False,
        record_id: Optional[str] = None,
    ):
        if not uid:
            raise ValueError("Site uid cannot be empty")
        self._uid = uid
        self.display_name = self._validate_display_name(display_name)
        self.hostname = normalize_hostname(hostname)
        self.active = bool(active)
        self.record_id = record_id

    @classmethod
    def global_site(cls, site_name: str, site_root: str) -> "Site":
        """Synthesize the global site from process-wide configuration."""
        return cls(uid=GLOBAL_SITE, display_name=site_name, hostname=site_root, active=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Site":
        return cls(
            uid=record["uid"],
            display_name=record.get("displayName", ""),
            hostname=record.get("hostname", ""),
            active=record.get("active", False),
            record_id=record.get("_id"),
        )

    def _validate_display_name(self, display_name: str) -> str:
        if display_name is None or not display_name.strip():
            raise ValueError("Site display name cannot be empty")
        return display_name.strip()

    @property
    def uid(self) -> str:
        return self._uid

    @property
    def ref(self) -> SiteRef:
        return SiteRef.parse(self._uid)

    @property
    def is_global(self) -> bool:
        return self.ref.is_global

    def activate(self) -> None:
        self.active = True

    def deactivate(self) -> None:
        self.active = False

    def rename(self, display_name: str) -> None:
        self.display_name = self._validate_display_name(display_name)

    def move_to(self, hostname: str) -> None:
        self.hostname = normalize_hostname(hostname)

    def to_record(self) -> Dict[str, Any]:
        """Storage shape of the site."""
        record = {
            "uid": self._uid,
            "displayName": self.display_name,
            "hostname": self.hostname,
            "active": self.active,
        }
        if self.record_id:
            record["_id"] = self.record_id
        return record

    def to_routing_config(self) -> Dict[str, Any]:
        """Snapshot handed to the routing registry."""
        return {
            "uid": self._uid,
            "displayName": self.display_name,
            "hostname": self.hostname,
            "active": self.active,
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, Site):
            return False
        return self._uid == other._uid

    def __hash__(self) -> int:
        return hash(self._uid)

    def __str__(self) -> str:
        state = "active" if self.active else "inactive"
        return f"{self.display_name} ({self.hostname}, {state})"

    def __repr__(self) -> str:
        return (
            f"Site(uid={self._uid!r}, display_name={self.display_name!r}, "
            f"hostname={self.hostname!r}, active={self.active})"
        )


class SiteMap:
    """Sites segmented by active status."""

    def __init__(self, active: List[Site], inactive: List[Site]):
        self.active = list(active)
        self.inactive = list(inactive)

    @property
    def all(self) -> List[Site]:
        return self.active + self.inactive

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "active": [site.to_record() for site in self.active],
            "inactive": [site.to_record() for site in self.inactive],
        }
