from unittest.mock import patch

import pytest

pytestmark = pytest.mark.integration


def _broker_refused():
    raise OSError("broker refused")


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert set(data["services"]) == {"database", "cache", "broker"}

    def test_health_check_reports_response_times(self, client):
        services = client.get("/health").json()["services"]
        for name in ("database", "cache", "broker"):
            assert services[name]["status"] == "up"
            assert "response_time_ms" in services[name]

    def test_cache_down_returns_503(self, client):
        with patch("modules.core.views.cache.set", side_effect=ConnectionError("refused")):
            response = client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["services"]["cache"] == {"status": "down"}
        assert data["services"]["database"]["status"] == "up"

    def test_broker_down_returns_503(self, client):
        with patch.dict("modules.core.views.PROBES", {"broker": _broker_refused}):
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["services"]["broker"] == {"status": "down"}
