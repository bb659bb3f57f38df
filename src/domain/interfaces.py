"""
Domain Collaborator Interfaces

Abstract interfaces that define the contracts the site domain consumes.
These interfaces are implemented by the infrastructure layer.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional


class CaseInsensitive:
    """Filter operator: anchored, case-insensitive equality."""

    __slots__ = ("value",)

    def __init__(self, value: str):
        self.value = value

    def matches(self, candidate: Any) -> bool:
        if not isinstance(candidate, str):
            return False
        return candidate.casefold() == self.value.casefold()

    def __eq__(self, other) -> bool:
        return isinstance(other, CaseInsensitive) and other.value == self.value

    def __repr__(self) -> str:
        return f"CaseInsensitive({self.value!r})"


class NotEqual:
    """Filter operator: field differs from the value."""

    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def matches(self, candidate: Any) -> bool:
        return candidate != self.value

    def __eq__(self, other) -> bool:
        return isinstance(other, NotEqual) and other.value == self.value

    def __repr__(self) -> str:
        return f"NotEqual({self.value!r})"


class DocumentStoreInterface(ABC):
    """
    Persistence contract over collections of JSON-like records.

    ``where`` maps field names to a plain value (equality) or to one of the
    filter operators above. Every record carries a string ``_id``.
    """

    @abstractmethod
    async def query(self, collection: str, where: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Return the records matching ``where`` in insertion order."""
        pass

    @abstractmethod
    async def count(self, collection: str, where: Dict[str, Any]) -> int:
        """Count the records matching ``where``."""
        pass

    @abstractmethod
    async def exists(self, collection: str, where: Dict[str, Any]) -> bool:
        """Check whether any record matches ``where``."""
        pass

    @abstractmethod
    async def load_by_values(
        self, collection: str, where: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Return the first record matching ``where`` or None."""
        pass

    @abstractmethod
    async def save(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record without ``_id`` or replace the one with that ``_id``."""
        pass


class RoutingRegistryInterface(ABC):
    """In-memory hostname to site config table consulted for dispatch."""

    @abstractmethod
    def load_site(self, config: Dict[str, Any]) -> None:
        """Register a site using the active flag carried by the config."""
        pass

    @abstractmethod
    def activate_site(self, config: Dict[str, Any]) -> None:
        """Register a site with its public routes enabled."""
        pass

    @abstractmethod
    def deactivate_site(self, config: Dict[str, Any]) -> None:
        """Keep a site registered for admin routes only."""
        pass

    @abstractmethod
    def unload_site(self, hostname: str) -> bool:
        """Remove a hostname from the table."""
        pass

    @abstractmethod
    def get_site(self, hostname: str) -> Optional[Dict[str, Any]]:
        """Return the entry registered for a hostname."""
        pass


CommandHandler = Callable[[Any], Awaitable[None]]


class CommandChannelInterface(ABC):
    """
    Process-to-process command messaging.

    Commands are broadcast to every peer; a peer answers with
    ``send_in_response_to`` and the initiator correlates answers by ``jobId``.
    """

    @property
    @abstractmethod
    def node_id(self) -> str:
        """Identifier of this process on the channel."""
        pass

    @abstractmethod
    async def start(self) -> None:
        """Begin receiving messages."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop receiving messages and release connections."""
        pass

    @abstractmethod
    def register_for_type(self, command_type: str, handler: CommandHandler) -> None:
        """Route inbound commands of ``command_type`` to ``handler``."""
        pass

    @abstractmethod
    async def broadcast(self, command: Dict[str, Any]) -> int:
        """Send a command to all peers and return how many peers will receive it."""
        pass

    @abstractmethod
    async def send_in_response_to(
        self, command: Dict[str, Any], payload: Dict[str, Any]
    ) -> None:
        """Answer a received command."""
        pass

    @abstractmethod
    async def collect_responses(
        self, job_id: str, expected: int, timeout: float
    ) -> List[Dict[str, Any]]:
        """Wait for up to ``expected`` answers to ``job_id`` within ``timeout`` seconds."""
        pass
