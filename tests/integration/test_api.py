"""
Integration Tests: API Endpoints

Tests for the HTTP surface: health, relay stats and metrics.
"""

import pytest
from fastapi.testclient import TestClient


# =============================================================================
# Health Endpoint Tests
# =============================================================================

class TestHealthEndpoints:
    """Test health check endpoints."""

    @pytest.mark.integration
    def test_root_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "connections": 0}

    @pytest.mark.integration
    def test_root_health_counts_connections(self, client):
        with client.websocket_connect("/") as ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()

            assert client.get("/health").json()["connections"] == 1

    @pytest.mark.integration
    def test_v1_health(self, client):
        response = client.get("/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["uptime_seconds"] >= 0

    @pytest.mark.integration
    def test_health_detailed(self, client):
        response = client.get("/v1/health/detailed")

        assert response.status_code == 200
        data = response.json()
        components = {c["component"]: c for c in data["components"]}
        assert "system" in components
        assert components["relay"]["status"] == "healthy"
        assert components["relay"]["details"]["sessions"] == 0

    @pytest.mark.integration
    def test_component_health(self, client):
        response = client.get("/v1/health/component/relay")

        assert response.status_code == 200
        assert response.json()["component"] == "relay"

    @pytest.mark.integration
    def test_unknown_component(self, client):
        response = client.get("/v1/health/component/database")

        assert response.status_code == 404

    @pytest.mark.integration
    def test_ready_and_live(self, client):
        assert client.get("/v1/health/ready").json() == {"ready": True}
        assert client.get("/v1/health/live").json()["alive"] is True

    @pytest.mark.integration
    def test_not_ready_before_startup(self, app):
        response = TestClient(app).get("/v1/health/ready")

        assert response.status_code == 503
        assert response.json()["ready"] is False


# =============================================================================
# Relay Stats Tests
# =============================================================================

class TestSessionStats:
    """Test relay statistics endpoints."""

    @pytest.mark.integration
    def test_stats(self, client):
        with client.websocket_connect("/") as alice, client.websocket_connect("/") as bob:
            alice.send_json({"type": "create_session", "sessionId": "s1", "topic": "Private", "userName": "Alice"})
            alice.receive_json()
            bob.send_json({"type": "ping"})
            bob.receive_json()

            response = client.get("/v1/sessions/stats")

        assert response.status_code == 200
        data = response.json()
        assert data == {
            "sessions": 1,
            "participants": 1,
            "connections": 2,
            "bound_connections": 1,
            "session_ttl_seconds": 14400,
        }
        assert "Private" not in response.text
        assert "Alice" not in response.text

    @pytest.mark.integration
    def test_stats_before_startup(self, app):
        response = TestClient(app).get("/v1/sessions/stats")

        assert response.status_code == 503

    @pytest.mark.integration
    def test_metrics(self, client):
        with client.websocket_connect("/") as ws:
            ws.send_text("garbage")
            ws.receive_json()

            response = client.get("/v1/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "# TYPE relay_sessions_active gauge" in response.text
        assert "relay_connections_open 1" in response.text
        assert 'relay_errors_total{code="malformed_frame"} 1.0' in response.text

    @pytest.mark.integration
    def test_cors_headers(self, client):
        response = client.get("/health", headers={"Origin": "http://example.com"})

        assert response.headers["access-control-allow-origin"] == "*"
