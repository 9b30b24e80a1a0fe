from datetime import datetime, timedelta, timezone

import pytest
from prometheus_client import REGISTRY

from opsmonitor.core.errors import DashboardError, StoreError
from opsmonitor.crud import alerts, health_checks, logs, metrics
from opsmonitor.models.monitoring import Alert
from opsmonitor.schemas.monitoring import AlertIn, HealthCheckIn, LogIn, MetricIn
from opsmonitor.services import dashboard
from opsmonitor.services.dashboard import fold_alerts, fold_health_checks, fold_logs, fold_metrics

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


async def _metric(store, name, value, ago):
    await metrics.create_metric(store, MetricIn(metric_name=name, metric_value=value, timestamp=NOW - ago))


async def _log(store, level, ago=timedelta(minutes=5)):
    await logs.create_log(store, LogIn(level=level, message=level, service="api", timestamp=NOW - ago))


async def _alert(store, severity, ago):
    return (await alerts.create_alert(store, AlertIn(
        alert_name=f"{severity} alert", severity=severity, threshold_value=1, current_value=2,
        triggered_at=NOW - ago,
    ))).data


async def _health(store, service, status):
    await health_checks.upsert_health_check(store, HealthCheckIn(service_name=service, endpoint="/health", status=status))


@pytest.mark.asyncio
async def test_dashboard_example(store):
    await _metric(store, "total_requests", 120, timedelta(minutes=10))
    await _metric(store, "error_rate", 1.5, timedelta(minutes=10))
    for name in ("api", "db", "cache"):
        await _health(store, name, "healthy")
    await _health(store, "queue", "degraded")
    await _log(store, "error")
    await _log(store, "error")

    res = await dashboard.get_dashboard(store, now=NOW)
    assert res.success
    assert res.data.model_dump(exclude={"generated_at"}) == {
        "metrics": {"total_requests": 120, "error_rate": 1.5, "average_response_time": 0, "active_users": 0},
        "alerts": {"active": 0, "critical": 0, "resolved_today": 0},
        "health_checks": {"healthy_services": 3, "degraded_services": 1, "total_services": 4},
        "logs": {"error_count": 2, "warning_count": 0, "info_count": 0},
    }


@pytest.mark.asyncio
async def test_dashboard_windows_and_tenancy(store, other_store):
    await _metric(store, "total_requests", 50, timedelta(minutes=40))
    await _metric(store, "total_requests", 70, timedelta(minutes=5))          # latest wins
    await _metric(store, "avg_response_time", 210, timedelta(minutes=5))
    await _metric(store, "active_users", 9, timedelta(hours=2))                # outside the hour
    await _metric(store, "cpu", 99, timedelta(minutes=5))                      # not on the dashboard
    await _metric(other_store, "error_rate", 50, timedelta(minutes=5))

    await _alert(store, "critical", timedelta(hours=1))
    await _alert(store, "low", timedelta(hours=3))
    resolved = await _alert(store, "high", timedelta(hours=23))
    await alerts.resolve_alert(store, resolved.id)
    old = await _alert(store, "high", timedelta(hours=25))
    await alerts.resolve_alert(store, old.id)                                  # triggered outside the day

    await _log(store, "fatal")
    await _log(store, "warn")
    await _log(store, "info")
    await _log(store, "debug")
    await _log(store, "error", timedelta(hours=2))

    s = (await dashboard.get_dashboard(store, now=NOW)).data
    assert s.metrics.total_requests == 70
    assert s.metrics.average_response_time == 210
    assert s.metrics.active_users == 0 and s.metrics.error_rate == 0
    assert (s.alerts.active, s.alerts.critical, s.alerts.resolved_today) == (2, 1, 1)
    assert (s.logs.error_count, s.logs.warning_count, s.logs.info_count) == (1, 1, 1)
    assert s.health_checks.total_services == 0

    assert REGISTRY.get_sample_value("active_alerts_by_severity", {"severity": "critical"}) == 1
    assert REGISTRY.get_sample_value("active_alerts_by_severity", {"severity": "high"}) == 0


@pytest.mark.asyncio
async def test_summary_is_frozen(store):
    s = (await dashboard.get_dashboard(store, now=NOW)).data
    with pytest.raises(ValueError):
        s.metrics.total_requests = 1


@pytest.mark.asyncio
@pytest.mark.parametrize("failing", ["_recent_metrics", "_recent_alerts", "_health_snapshot", "_recent_log_levels"])
async def test_any_failed_read_fails_the_dashboard(store, monkeypatch, failing):
    async def empty(*args, **kwargs):
        return []

    async def broken(*args, **kwargs):
        raise StoreError("fetch dashboard alerts", "connection reset")

    for name in ("_recent_metrics", "_recent_alerts", "_health_snapshot", "_recent_log_levels"):
        monkeypatch.setattr(dashboard, name, broken if name == failing else empty)

    with pytest.raises(DashboardError) as exc:
        await dashboard.get_dashboard(store, now=NOW)
    assert str(exc.value) == "Failed to fetch dashboard data: connection reset"


@pytest.mark.asyncio
async def test_store_failure_is_wrapped_once(store, engine):
    async with engine.begin() as conn:
        await conn.run_sync(Alert.__table__.drop)
    with pytest.raises(DashboardError) as exc:
        await dashboard.get_dashboard(store, now=NOW)
    message = str(exc.value)
    assert message.startswith("Failed to fetch dashboard data: ")
    assert message.count("Failed to") == 1
    assert "monitoring_alerts" in message


def test_fold_metrics_last_write_wins():
    s = fold_metrics([("total_requests", 1), ("avg_response_time", 5), ("total_requests", 3), ("cpu", 8)])
    assert s.total_requests == 3
    assert s.average_response_time == 5
    assert s.active_users == 0


def test_fold_alerts():
    s = fold_alerts([("active", "critical"), ("active", "low"), ("resolved", "critical"), ("suppressed", "high")])
    assert (s.active, s.critical, s.resolved_today) == (2, 1, 1)


def test_fold_health_checks():
    s = fold_health_checks(["healthy", "degraded", "unhealthy", "healthy"])
    assert (s.healthy_services, s.degraded_services, s.total_services) == (2, 1, 4)


def test_fold_logs():
    s = fold_logs(["error", "fatal", "warn", "info", "debug"])
    assert (s.error_count, s.warning_count, s.info_count) == (2, 1, 1)
