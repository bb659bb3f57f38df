"""
Shared fixtures for the site management tests.

Nodes of a cluster are simulated with in-memory document stores and command
channels attached to one in-process bus.
"""

from unittest.mock import Mock

import pytest

from app.services.command_service import LocalCommandBus, LocalCommandChannel
from app.services.database import InMemoryDocumentStore
from app.services.routing import RoutingRegistry
from src.application.commands.handlers import register_site_command_handlers
from src.application.services.site_service import MultisiteOptions, SiteService


class Node:
    """One simulated process: its own registry and channel, shared storage."""

    def __init__(self, name, store, bus, options):
        self.name = name
        self.store = store
        self.registry = RoutingRegistry(multisite_enabled=options.multisite_enabled)
        self.channel = LocalCommandChannel(name, bus)
        self.service = SiteService(store, self.registry, options=options, command_channel=self.channel)
        self.handlers = register_site_command_handlers(self.channel, self.service)


@pytest.fixture
def options():
    return MultisiteOptions(
        site_name="Multisite",
        site_root="http://localhost:8080",
        multisite_enabled=True,
        global_root="http://admin.example.com",
    )


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def registry():
    return RoutingRegistry(multisite_enabled=True)


@pytest.fixture
def site_service(store, registry, options):
    """Site service without a command channel, as on a single node."""
    return SiteService(store, registry, options=options)


@pytest.fixture
def mock_registry():
    return Mock(spec=RoutingRegistry)


@pytest.fixture
def bus():
    return LocalCommandBus()


@pytest.fixture
def cluster(store, bus, options):
    """Two nodes sharing a document store and a command bus."""
    return [Node(name, store, bus, options) for name in ("node-a", "node-b")]


@pytest.fixture
def make_node(store, bus):
    """Factory for extra cluster nodes with custom options."""

    def factory(name, node_options):
        return Node(name, store, bus, node_options)

    return factory
