import pytest
from fastapi.testclient import TestClient

from opsmonitor.core import config
from opsmonitor.core.security import create_access_token
from opsmonitor.main import app


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setattr(config, "DB_CREATE_ALL", True)
    with TestClient(app) as c:
        c.headers.update({"Authorization": f"Bearer {create_access_token('user-1')}"})
        yield c


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["database"] == "connected"


def test_prometheus_endpoint(client):
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "active_alerts_by_severity" in r.text


def test_requires_bearer_token(client):
    r = client.get("/api/monitoring/metrics", headers={"Authorization": ""})
    assert r.status_code == 401
    r = client.get("/api/monitoring/metrics", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_metric_envelopes(client):
    r = client.post("/api/monitoring/metrics", json={"metric_name": "cpu", "metric_value": 0.7,
                                                    "labels": {"host": "a"}})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True and "timestamp" in body
    metric_id = body["data"]["id"]

    r = client.get("/api/monitoring/metrics", params={"label": "host:a", "limit": 5})
    body = r.json()
    assert body["pagination"] == {"page": 1, "limit": 5, "total": 1, "pages": 1}
    assert body["data"][0]["id"] == metric_id

    r = client.delete(f"/api/monitoring/metrics/{metric_id}")
    assert r.status_code == 200 and r.json()["data"] is None


def test_bad_paging_and_labels_are_400(client):
    assert client.get("/api/monitoring/logs", params={"page": 0}).status_code == 400
    assert client.get("/api/monitoring/logs", params={"limit": 0}).status_code == 400
    assert client.get("/api/monitoring/metrics", params={"label": "nocolon"}).status_code == 400


def test_alert_lifecycle_over_http(client):
    r = client.post("/api/monitoring/alerts", json={
        "alert_name": "error rate", "severity": "critical", "threshold_value": 5, "current_value": 9,
    })
    alert_id = r.json()["data"]["id"]

    r = client.post(f"/api/monitoring/alerts/{alert_id}/resolve")
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "resolved"
    assert r.json()["data"]["resolved_at"] is not None

    r = client.post(f"/api/monitoring/alerts/{alert_id}/suppress")
    assert r.status_code == 400
    assert r.json()["success"] is False

    r = client.post("/api/monitoring/alerts/missing/resolve")
    assert r.status_code == 404
    assert r.json()["detail"] == "Failed to update alert: alert missing not found"


def test_health_check_upsert_and_status(client):
    for status in ("healthy", "degraded"):
        r = client.put("/api/monitoring/health-checks", json={
            "service_name": "api", "endpoint": "/health", "status": status, "metadata": {"zone": "a"},
        })
        assert r.status_code == 200
    r = client.get("/api/monitoring/health-checks")
    body = r.json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["status"] == "degraded"
    assert body["data"][0]["metadata"] == {"zone": "a"}

    r = client.get("/api/monitoring/status")
    assert r.json()["status"] == "warning"
    assert r.json()["summary"]["health_checks"]["degraded_services"] == 1


def test_dashboard_and_log_stats(client):
    client.post("/api/monitoring/logs", json={"level": "error", "message": "boom", "service": "api"})
    client.post("/api/monitoring/metrics", json={"metric_name": "total_requests", "metric_value": 120})

    r = client.get("/api/monitoring/dashboard")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["metrics"]["total_requests"] == 120
    assert data["logs"]["error_count"] == 1

    r = client.get("/api/monitoring/logs/stats", params={
        "start_time": "2000-01-01T00:00:00Z", "end_time": "2100-01-01T00:00:00Z",
    })
    assert r.json() == {"total": 1, "by_level": {"error": 1}, "by_service": {"api": 1}}


def test_tenants_do_not_see_each_other(client):
    client.post("/api/monitoring/metrics", json={"metric_name": "cpu", "metric_value": 1})
    other = {"Authorization": f"Bearer {create_access_token('user-2')}"}
    r = client.get("/api/monitoring/metrics", headers=other)
    assert r.json()["pagination"]["total"] == 0


def test_http_limit_is_capped(client):
    r = client.get("/api/monitoring/metrics", params={"limit": config.MAX_PAGE_LIMIT + 1})
    assert r.status_code == 422
    r = client.get("/api/monitoring/metrics", params={"limit": config.MAX_PAGE_LIMIT})
    assert r.status_code == 200
