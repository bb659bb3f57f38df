"""
Tests for the routing registry and the host dispatch middleware.
"""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from app.middleware.error_handling import ErrorHandlingMiddleware
from app.middleware.site_routing import SiteRoutingMiddleware
from app.services.routing import RoutingRegistry
from src.domain.value_objects import GLOBAL_SITE, RoutingState


def _config(uid, hostname, active=False):
    return {"uid": uid, "displayName": uid.title(), "hostname": hostname, "active": active}


class TestRoutingRegistry:
    """Test cases for RoutingRegistry."""

    def setup_method(self):
        """Set up test fixtures."""
        self.registry = RoutingRegistry(multisite_enabled=True)

    def test_states(self):
        assert self.registry.state_of("acme.example.com") == RoutingState.UNREGISTERED

        self.registry.load_site(_config("acme", "acme.example.com"))
        assert self.registry.state_of("acme.example.com") == RoutingState.REGISTERED_INACTIVE

        self.registry.activate_site(_config("acme", "acme.example.com"))
        assert self.registry.state_of("acme.example.com") == RoutingState.REGISTERED_ACTIVE

        self.registry.deactivate_site(_config("acme", "acme.example.com", active=True))
        assert self.registry.state_of("acme.example.com") == RoutingState.REGISTERED_INACTIVE

        assert self.registry.unload_site("acme.example.com") is True
        assert self.registry.state_of("acme.example.com") == RoutingState.UNREGISTERED
        assert self.registry.unload_site("acme.example.com") is False

    def test_hostnames_are_case_insensitive_keys(self):
        self.registry.activate_site(_config("acme", "Acme.Example.com"))

        assert self.registry.get_site("ACME.example.COM")["uid"] == "acme"
        assert len(self.registry) == 1

    def test_last_write_wins(self):
        self.registry.activate_site(_config("acme", "shared.example.com"))
        self.registry.load_site(_config("beta", "shared.example.com"))

        entry = self.registry.get_site("shared.example.com")
        assert entry["uid"] == "beta"
        assert entry["active"] is False
        assert len(self.registry) == 1

    def test_entries_are_snapshots(self):
        self.registry.load_site(_config("acme", "acme.example.com"))
        self.registry.get_site("acme.example.com")["active"] = True

        assert self.registry.get_site("acme.example.com")["active"] is False

    def test_resolve_strips_port(self):
        self.registry.activate_site(_config("acme", "acme.example.com"))

        assert self.registry.resolve("acme.example.com:8443")["uid"] == "acme"
        assert self.registry.resolve("unknown.example.com") is None
        assert self.registry.resolve(None) is None

    def test_single_tenant_resolves_to_global(self):
        registry = RoutingRegistry(multisite_enabled=False)
        registry.activate_site(_config(GLOBAL_SITE, "localhost:8080"))

        assert registry.resolve("anything.example.com")["uid"] == GLOBAL_SITE
        assert registry.is_public_allowed("anything.example.com")
        assert registry.get_global()["hostname"] == "localhost:8080"


class TestSiteRoutingMiddleware:
    """Test cases for SiteRoutingMiddleware."""

    def setup_method(self):
        """Set up test fixtures."""
        self.registry = RoutingRegistry(multisite_enabled=True)
        self.registry.activate_site(_config("acme", "acme.example.com"))
        self.registry.load_site(_config("beta", "beta.example.com"))

        app = FastAPI()
        app.state.routing_registry = self.registry
        app.add_middleware(
            SiteRoutingMiddleware,
            admin_prefixes=["/admin"],
            unrouted_prefixes=["/health"],
        )
        app.add_middleware(ErrorHandlingMiddleware)
        self.app = app

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        @app.get("/page")
        async def page(request: Request):
            return {"site": request.state.site["uid"]}

        @app.get("/admin/page")
        async def admin_page(request: Request):
            return {"site": request.state.site["uid"]}

        self.client = TestClient(app)

    def test_active_site_is_served(self):
        response = self.client.get("/page", headers={"host": "acme.example.com"})

        assert response.status_code == 200
        assert response.json() == {"site": "acme"}
        assert response.headers["X-Site-ID"] == "acme"

    def test_inactive_site_serves_admin_only(self):
        response = self.client.get("/page", headers={"host": "beta.example.com"})
        assert response.status_code == 503
        assert response.json()["error_code"] == "SITE_INACTIVE"

        response = self.client.get("/admin/page", headers={"host": "beta.example.com"})
        assert response.status_code == 200
        assert response.json() == {"site": "beta"}

    @pytest.mark.parametrize("path", ["/page", "/admin/page"])
    def test_unknown_host_is_not_found(self, path):
        response = self.client.get(path, headers={"host": "nobody.example.com"})

        assert response.status_code == 404
        assert response.json()["error_code"] == "SITE_NOT_FOUND"
        assert response.json()["details"]["host"] == "nobody.example.com"

    def test_unrouted_paths_skip_resolution(self):
        response = self.client.get("/health", headers={"host": "nobody.example.com"})
        assert response.status_code == 200

    def test_missing_registry_is_unavailable(self):
        self.app.state.routing_registry = None

        response = self.client.get("/page", headers={"host": "acme.example.com"})

        assert response.status_code == 503
        assert response.json()["error_code"] == "ROUTING_UNAVAILABLE"

    def test_prefix_match_respects_path_segments(self):
        middleware = SiteRoutingMiddleware(FastAPI(), admin_prefixes=["/admin"], unrouted_prefixes=[])
        assert middleware.is_admin_path("/admin")
        assert middleware.is_admin_path("/admin/sites")
        assert not middleware.is_admin_path("/administrator")
