from datetime import datetime, timedelta, timezone

from opsmonitor.schemas.monitoring import (
    AlertsSummary, DashboardSummary, HealthChecksSummary, LogsSummary, MetricsSummary, TimeSeriesPoint,
)
from opsmonitor.utils.stats import overall_status, series_trend, summarize_series

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _points(values):
    return [TimeSeriesPoint(timestamp=T0 + timedelta(minutes=i), value=v) for i, v in enumerate(values)]


def test_summarize_series():
    s = summarize_series(_points([10, 20, 30, 40]))
    assert (s.current, s.average, s.minimum, s.maximum) == (40, 25, 10, 40)
    assert s.trend == "up"
    assert s.points == 4


def test_summarize_empty_series():
    s = summarize_series([])
    assert (s.current, s.average, s.minimum, s.maximum, s.trend, s.points) == (0, 0, 0, 0, "stable", 0)


def test_trend_band():
    assert series_trend([100, 100, 104, 104]) == "stable"
    assert series_trend([100, 100, 106, 106]) == "up"
    assert series_trend([100, 100, 94, 94]) == "down"
    assert series_trend([5]) == "stable"


def _summary(active=0, critical=0, healthy=0, degraded=0, total=0):
    return DashboardSummary(
        metrics=MetricsSummary(),
        alerts=AlertsSummary(active=active, critical=critical),
        health_checks=HealthChecksSummary(healthy_services=healthy, degraded_services=degraded, total_services=total),
        logs=LogsSummary(),
        generated_at=T0,
    )


def test_overall_status():
    assert overall_status(_summary(active=2, critical=1, healthy=3, total=3)) == "critical"
    assert overall_status(_summary(active=1, healthy=3, total=3)) == "warning"
    assert overall_status(_summary(healthy=2, degraded=1, total=3)) == "warning"
    assert overall_status(_summary(healthy=3, total=3)) == "healthy"
    assert overall_status(_summary(healthy=2, total=3)) == "degraded"
    assert overall_status(_summary()) == "healthy"
