"""Dashboard roll-up: four concurrent reads folded into fixed-shape counters.

The join is all-or-nothing. If any sub-read fails the whole aggregation fails
with DashboardError and no partial summary is returned.

Note on ``resolved_today``: alerts are windowed on ``triggered_at`` (last 24h),
not on ``resolved_at``. A resolved alert triggered 23h ago counts whenever it
was resolved; one triggered 25h ago and resolved a minute ago does not.
"""
from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsmonitor.core.database import utcnow
from opsmonitor.core.errors import DashboardError, MonitoringError
from opsmonitor.core.store import MonitoringStore
from opsmonitor.metrics import dashboard_aggregations_total, refresh_active_alerts_gauge
from opsmonitor.models.monitoring import Alert, HealthCheck, Log, Metric
from opsmonitor.schemas.monitoring import (
    AlertsSummary,
    ApiResponse,
    DashboardSummary,
    HealthChecksSummary,
    LogsSummary,
    MetricsSummary,
    as_utc,
)

logger = logging.getLogger(__name__)

# stored metric name -> summary field
DASHBOARD_METRICS = {
    "total_requests": "total_requests",
    "error_rate": "error_rate",
    "avg_response_time": "average_response_time",
    "active_users": "active_users",
}


# --- folding ------------------------------------------------------------------

def fold_metrics(rows: Iterable[Tuple[str, float]]) -> MetricsSummary:
    values = {field: 0.0 for field in DASHBOARD_METRICS.values()}
    for name, value in rows:
        field = DASHBOARD_METRICS.get(name)
        if field is not None:
            values[field] = value      # last write wins, no averaging
    return MetricsSummary(**values)


def fold_alerts(rows: Iterable[Tuple[str, str]]) -> AlertsSummary:
    active = critical = resolved = 0
    for status, severity in rows:
        if status == "active":
            active += 1
            if severity == "critical":
                critical += 1
        elif status == "resolved":
            resolved += 1
    return AlertsSummary(active=active, critical=critical, resolved_today=resolved)


def fold_health_checks(statuses: Iterable[str]) -> HealthChecksSummary:
    total = healthy = degraded = 0
    for status in statuses:
        total += 1
        if status == "healthy":
            healthy += 1
        elif status == "degraded":
            degraded += 1
    return HealthChecksSummary(healthy_services=healthy, total_services=total, degraded_services=degraded)


def fold_logs(levels: Iterable[str]) -> LogsSummary:
    errors = warnings = infos = 0
    for level in levels:
        if level in ("error", "fatal"):
            errors += 1
        elif level == "warn":
            warnings += 1
        elif level == "info":
            infos += 1
    return LogsSummary(error_count=errors, warning_count=warnings, info_count=infos)


# --- sub-reads ----------------------------------------------------------------

async def _recent_metrics(store: MonitoringStore, since: datetime):
    stmt = (
        select(Metric.metric_name, Metric.metric_value)
        .where(Metric.user_id == store.user_id,
               Metric.timestamp >= since,
               Metric.metric_name.in_(list(DASHBOARD_METRICS)))
        .order_by(Metric.timestamp.asc(), Metric.id.asc())
    )

    async def _fetch(db: AsyncSession):
        return (await db.execute(stmt)).all()

    return await store.run("fetch dashboard metrics", _fetch)


async def _recent_alerts(store: MonitoringStore, since: datetime):
    stmt = select(Alert.status, Alert.severity).where(
        Alert.user_id == store.user_id, Alert.triggered_at >= since
    )

    async def _fetch(db: AsyncSession):
        return (await db.execute(stmt)).all()

    return await store.run("fetch dashboard alerts", _fetch)


async def _health_snapshot(store: MonitoringStore):
    # current state, not a time window
    stmt = select(HealthCheck.status).where(HealthCheck.user_id == store.user_id)

    async def _fetch(db: AsyncSession):
        return (await db.execute(stmt)).scalars().all()

    return await store.run("fetch dashboard health checks", _fetch)


async def _recent_log_levels(store: MonitoringStore, since: datetime):
    stmt = select(Log.level).where(Log.user_id == store.user_id, Log.timestamp >= since)

    async def _fetch(db: AsyncSession):
        return (await db.execute(stmt)).scalars().all()

    return await store.run("fetch dashboard logs", _fetch)


async def get_dashboard(store: MonitoringStore, now: Optional[datetime] = None) -> ApiResponse[DashboardSummary]:
    now = as_utc(now) if now else utcnow()
    one_hour_ago = now - timedelta(hours=1)
    one_day_ago = now - timedelta(days=1)

    try:
        metric_rows, alert_rows, health_rows, log_rows = await asyncio.gather(
            _recent_metrics(store, one_hour_ago),
            _recent_alerts(store, one_day_ago),
            _health_snapshot(store),
            _recent_log_levels(store, one_hour_ago),
        )
    except Exception as e:
        dashboard_aggregations_total.labels(outcome="error").inc()
        logger.warning("dashboard aggregation failed for user=%s: %s", store.user_id, e)
        reason = e.detail if isinstance(e, MonitoringError) else str(e)
        raise DashboardError(reason) from e

    summary = DashboardSummary(
        metrics=fold_metrics(metric_rows),
        alerts=fold_alerts(alert_rows),
        health_checks=fold_health_checks(health_rows),
        logs=fold_logs(log_rows),
        generated_at=utcnow(),
    )
    refresh_active_alerts_gauge(alert_rows)
    dashboard_aggregations_total.labels(outcome="ok").inc()
    return ApiResponse[DashboardSummary](data=summary, timestamp=summary.generated_at.isoformat())
