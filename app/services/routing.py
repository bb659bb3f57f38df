"""
Routing registry for hostname based request dispatch.

Holds the in-memory map of hostname to site configuration consulted for
every incoming request. Entries are written only by the site service and
the activation jobs; the last write for a hostname wins.
"""

import logging
from typing import Any, Dict, List, Optional

from src.domain.interfaces import RoutingRegistryInterface
from src.domain.value_objects import GLOBAL_SITE, RoutingState

logger = logging.getLogger(__name__)


def _host_key(host: Optional[str]) -> str:
    return (host or "").strip().lower()


class RoutingRegistry(RoutingRegistryInterface):
    """In-memory hostname to site config table for one process."""

    def __init__(self, multisite_enabled: bool = False):
        self.multisite_enabled = multisite_enabled
        self._sites: Dict[str, Dict[str, Any]] = {}

    def load_site(self, config: Dict[str, Any]) -> None:
        entry = {
            "uid": config["uid"],
            "displayName": config.get("displayName"),
            "hostname": _host_key(config["hostname"]),
            "active": bool(config.get("active", False)),
        }
        previous = self._sites.get(entry["hostname"])
        if previous and previous["uid"] != entry["uid"]:
            logger.warning(
                f"Hostname {entry['hostname']} moves from site {previous['uid']} to {entry['uid']}"
            )
        self._sites[entry["hostname"]] = entry
        logger.debug(f"Routing entry for {entry['hostname']} is now {self.state_of(entry['hostname']).value}")

    def activate_site(self, config: Dict[str, Any]) -> None:
        self.load_site({**config, "active": True})

    def deactivate_site(self, config: Dict[str, Any]) -> None:
        self.load_site({**config, "active": False})

    def unload_site(self, hostname: str) -> bool:
        removed = self._sites.pop(_host_key(hostname), None)
        if removed:
            logger.debug(f"Routing entry for {removed['hostname']} removed")
        return removed is not None

    def get_site(self, hostname: str) -> Optional[Dict[str, Any]]:
        entry = self._sites.get(_host_key(hostname))
        return dict(entry) if entry else None

    def get_global(self) -> Optional[Dict[str, Any]]:
        for entry in self._sites.values():
            if entry["uid"] == GLOBAL_SITE:
                return dict(entry)
        return None

    def resolve(self, host: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Find the entry serving a request ``Host`` header.

        Single tenant deployments serve every host with the global site.
        """
        if not self.multisite_enabled:
            return self.get_global()

        key = _host_key(host)
        entry = self._sites.get(key)
        if entry is None and ":" in key:
            entry = self._sites.get(key.rsplit(":", 1)[0])
        return dict(entry) if entry else None

    def is_public_allowed(self, host: Optional[str]) -> bool:
        entry = self.resolve(host)
        return bool(entry and entry["active"])

    def state_of(self, hostname: str) -> RoutingState:
        entry = self._sites.get(_host_key(hostname))
        if entry is None:
            return RoutingState.UNREGISTERED
        if entry["active"]:
            return RoutingState.REGISTERED_ACTIVE
        return RoutingState.REGISTERED_INACTIVE

    def snapshot(self) -> List[Dict[str, Any]]:
        return [dict(entry) for entry in self._sites.values()]

    def __len__(self) -> int:
        return len(self._sites)
