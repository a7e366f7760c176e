"""Integration tests for service endpoints and error envelopes."""
from unittest.mock import patch

from app.infrastructure.mongo import get_store


class TestServiceEndpoints:
    """Test unprefixed service routes."""

    def test_root(self, test_client):
        """Test service info."""
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, test_client):
        """Test liveness probe."""
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_id_header(self, test_client):
        """Test that every response carries a request id."""
        response = test_client.get("/health")

        assert response.headers.get("X-Request-ID")

    def test_ready_reports_degraded_when_ping_fails(self, test_client, store):
        """Test readiness without a reachable database."""
        with patch.object(store, "ping", side_effect=ConnectionError("down")):
            response = test_client.get("/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["checks"]["mongodb"] == "unreachable"


class TestErrorEnvelopes:
    """Test the JSON error bodies."""

    def test_unknown_route(self, test_client):
        """Test HTTP errors use the message envelope."""
        response = test_client.get("/api/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"message": "Not Found"}

    def test_unexpected_error_returns_server_error(self, test_client):
        """Test that unhandled failures become an opaque 500."""
        from main import app

        def broken_store():
            raise RuntimeError("database exploded")

        app.dependency_overrides[get_store] = broken_store
        response = test_client.get("/api/passes")

        assert response.status_code == 500
        data = response.json()
        assert data["message"] == "Server error"
        assert data["requestId"] == response.headers["X-Request-ID"]
        assert data["error"] == "database exploded"

    def test_invalid_query_value(self, test_client):
        """Test validation errors on query parameters."""
        response = test_client.get("/api/classes", params={"activeOnly": "maybe"})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "query.activeOnly"
