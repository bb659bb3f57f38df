"""
Test main FastAPI application endpoints.

Tests the basic functionality of the FastAPI application including
health checks and root endpoints.
"""

from fastapi.testclient import TestClient

from app.core.config import settings
from main import app


def test_root_endpoint():
    """Test the root endpoint returns basic information."""
    with TestClient(app) as client:
        response = client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert data["message"] == settings.PROJECT_NAME
    assert "version" in data
    assert "docs" in data


def test_health_check():
    """Test the health check endpoint."""
    with TestClient(app) as client:
        response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "multisite-api"
    assert data["document_store"]["status"] == "healthy"
    assert data["routing_entries"] >= 1


def test_health_before_startup():
    """Without the lifespan no services are wired yet."""
    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "starting"


def test_api_ping():
    """Test the API ping endpoint."""
    with TestClient(app) as client:
        response = client.get("/api/v1/ping")
    assert response.status_code == 200
    assert response.json()["message"] == "pong"


def test_api_status():
    """Test the API status endpoint."""
    with TestClient(app) as client:
        response = client.get("/api/v1/status")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert "service" in data
    assert "environment" in data
    assert data["node_id"] == settings.NODE_ID


def test_single_tenant_serves_every_host():
    with TestClient(app) as client:
        response = client.get("/api/v1/site", headers={"host": "anything.example.com"})
    assert response.status_code == 200
    assert response.json()["is_global"] is True


def test_docs_endpoints():
    """Test that documentation endpoints are accessible."""
    with TestClient(app) as client:
        assert client.get("/api/docs").status_code == 200
        assert client.get("/api/redoc").status_code == 200
        assert client.get("/api/v1/openapi.json").status_code == 200
