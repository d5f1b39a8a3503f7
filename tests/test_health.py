"""Tests for health endpoints."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from coursehub.core.database import AsyncCassandraConnection


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_without_database(client: TestClient) -> None:
    """Readiness is 503 when no Cassandra session was opened."""
    response = client.get("/health/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "unavailable"
    assert data["environment"] == "testing"
    assert data["dependencies"] == {
        "database": False,
        "storage": False,
        "email": False,
    }


def test_readiness_with_database(client: TestClient) -> None:
    with patch.object(AsyncCassandraConnection, "is_connected", return_value=True):
        response = client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["dependencies"]["database"] is True
    assert data["refund_window_days"] == 7


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "coursehub"
    assert "version" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "CourseHub" in data["message"]
    assert "version" in data


def test_request_id_header_echoed(client: TestClient) -> None:
    response = client.get("/health/live", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_unknown_route_uses_error_body(client: TestClient) -> None:
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    data = response.json()
    assert data["error"] is True
    assert data["status_code"] == 404
    assert "request_id" in data
