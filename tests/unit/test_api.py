"""
Unit Tests - API Endpoints
"""
import pytest
from fastapi.testclient import TestClient

from aquametrics.serving.api.dependencies import get_row_source
from aquametrics.serving.api.main import create_app


@pytest.fixture
def client(fake_source):
    """Client over a fresh app serving the fake row source"""
    app = create_app()
    app.dependency_overrides[get_row_source] = lambda: fake_source
    return TestClient(app)


class TestHealthEndpoints:
    """Tests for health endpoints"""

    def test_liveness(self, client):
        response = client.get("/api/v1/health/live")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "testing"
        assert data["checks"]["row_source"]["backend"] == "rest"

    def test_ready(self, client):
        response = client.get("/api/v1/health/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready"}

    def test_not_ready_when_store_fails(self, client, fake_source):
        fake_source.failing = {"systems"}

        response = client.get("/api/v1/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"

    def test_degraded_when_store_fails(self, client, fake_source):
        fake_source.failing = {"systems"}

        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_request_id_echoed(self, client):
        response = client.get("/api/v1/health/live", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"
        assert response.headers["X-Response-Time"].endswith("ms")


class TestDashboardEndpoints:
    """Tests for dashboard endpoints"""

    def test_kpis(self, client):
        response = client.get("/api/v1/dashboard/kpis")

        assert response.status_code == 200
        data = response.json()
        assert data["snapshot"]["scope"] == "farm"
        efcr = data["cards"][0]
        assert efcr["key"] == "efcr"
        assert efcr["display"] == "1.50"
        assert efcr["change"] == {"text": "-16.7% from last period", "trend": "down", "status": "positive"}

    def test_system_kpis(self, client, fake_source):
        response = client.get("/api/v1/dashboard/kpis", params={"system_id": 1})

        assert response.status_code == 200
        assert response.json()["snapshot"]["system_id"] == 1
        assert fake_source.calls[-1]["collection"] == "dashboard"

    def test_production_trend(self, client):
        response = client.get(
            "/api/v1/production/trend",
            params={"time_period": "week", "reference_date": "2024-06-30"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["time_period"] == "week"
        assert [point["date"] for point in data["series"]] == ["2024-06-23", "2024-06-30"]
        assert data["latest"]["total_feed"] == 16.5

    def test_population_trend(self, client):
        response = client.get(
            "/api/v1/production/population",
            params={"time_period": "2 weeks", "reference_date": "2024-06-30"},
        )

        assert response.status_code == 200
        assert [point["total_fish"] for point in response.json()["series"]] == [1012.0, 5030.0, 5000.0]

    def test_systems(self, client):
        response = client.get("/api/v1/systems")

        assert response.status_code == 200
        data = response.json()
        assert [row["name"] for row in data] == ["Cage A", "Cage B"]
        assert data[1]["biomass_density"] == 5.0

    def test_water_quality_rating(self, client):
        response = client.get(
            "/api/v1/water-quality/rating",
            params={"system_id": 1, "time_period": "week", "reference_date": "2024-06-30"},
        )

        assert response.status_code == 200
        assert response.json() == {"time_period": "week", "rating": 2.0, "label": "acceptable", "days": 3}

    def test_data_entry_context(self, client):
        response = client.get("/api/v1/data-entry/context", params={"limit": 3})

        assert response.status_code == 200
        data = response.json()
        assert len(data["systems"]) == 2
        assert data["recent_entries"]["mortality"][0]["id"] == "m1"

    def test_dashboard(self, client):
        response = client.get("/api/v1/dashboard", params={"reference_date": "2024-06-30", "time_period": "week"})

        assert response.status_code == 200
        data = response.json()
        assert data["water_quality"]["label"] == "acceptable"
        assert len(data["kpis"]["cards"]) == 4

    def test_empty_views_when_store_fails(self, client, fake_source):
        fake_source.failing = {"production_summary", "dashboard_consolidated"}

        trend = client.get("/api/v1/production/trend").json()
        kpis = client.get("/api/v1/dashboard/kpis").json()

        assert trend["series"] == []
        assert kpis["snapshot"] is None
        assert kpis["cards"][0]["display"] == "--"

    @pytest.mark.parametrize(
        "params",
        [{"time_period": "fortnight"}, {"growth_stage": "hatchery"}, {"system_id": 0}],
    )
    def test_invalid_filters(self, client, params):
        response = client.get("/api/v1/dashboard/kpis", params=params)
        assert response.status_code == 422

    def test_info(self, client):
        response = client.get("/api/v1/info")

        assert response.status_code == 200
        assert response.json()["name"] == "aquametrics"
