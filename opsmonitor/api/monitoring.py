from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from opsmonitor.core import config
from opsmonitor.core.store import MonitoringStore
from opsmonitor.crud import alerts, health_checks, logs, metrics
from opsmonitor.deps.auth import get_store
from opsmonitor.schemas.monitoring import (
    AlertFilter, AlertIn, AlertOut, AlertSeverity, AlertStatus, AlertUpdate,
    ApiResponse, DashboardSummary,
    HealthCheckFilter, HealthCheckIn, HealthCheckOut, HealthCheckUpdate, HealthStatus,
    LogEntry, LogFilter, LogIn, LogLevel, LogOut, LogStats,
    MetricFilter, MetricIn, MetricOut, MetricType, MetricUpdate,
    PaginatedResponse, SeriesStats, SystemStatus, TimeSeriesPoint,
)
from opsmonitor.services.dashboard import get_dashboard
from opsmonitor.utils.stats import overall_status, summarize_series

router = APIRouter(prefix="/api/monitoring", tags=["monitoring"])


def _parse_labels(pairs: Optional[List[str]]) -> Optional[Dict[str, str]]:
    """`?label=region:eu&label=env:prod` -> {"region": "eu", "env": "prod"}"""
    if not pairs:
        return None
    out: Dict[str, str] = {}
    for p in pairs:
        key, sep, value = p.partition(":")
        if not sep or not key:
            raise HTTPException(status_code=400, detail=f"Invalid label '{p}', expected key:value")
        out[key] = value
    return out


# ---- metrics -----------------------------------------------------------------

@router.get("/metrics", response_model=PaginatedResponse[MetricOut])
async def api_list_metrics(metric_name: Optional[str] = None,
                           metric_type: Optional[MetricType] = None,
                           start_time: Optional[datetime] = None,
                           end_time: Optional[datetime] = None,
                           label: Optional[List[str]] = Query(default=None),
                           page: int = 1, limit: int = Query(config.DEFAULT_PAGE_LIMIT, le=config.MAX_PAGE_LIMIT),
                           store: MonitoringStore = Depends(get_store)):
    f = MetricFilter(metric_name=metric_name, metric_type=metric_type,
                     start_time=start_time, end_time=end_time, labels=_parse_labels(label))
    return await metrics.get_metrics(store, f, page, limit)


@router.get("/metrics/timeseries", response_model=List[TimeSeriesPoint])
async def api_metric_time_series(metric_name: str, start_time: datetime, end_time: datetime,
                                 label: Optional[List[str]] = Query(default=None),
                                 store: MonitoringStore = Depends(get_store)):
    return await metrics.get_metric_time_series(store, metric_name, start_time, end_time, _parse_labels(label))


@router.get("/metrics/timeseries/stats", response_model=SeriesStats)
async def api_metric_series_stats(metric_name: str, start_time: datetime, end_time: datetime,
                                  label: Optional[List[str]] = Query(default=None),
                                  store: MonitoringStore = Depends(get_store)):
    points = await metrics.get_metric_time_series(store, metric_name, start_time, end_time, _parse_labels(label))
    return summarize_series(points)


@router.post("/metrics", response_model=ApiResponse[MetricOut])
async def api_create_metric(body: MetricIn, store: MonitoringStore = Depends(get_store)):
    return await metrics.create_metric(store, body)


@router.patch("/metrics/{metric_id}", response_model=ApiResponse[MetricOut])
async def api_update_metric(metric_id: str, body: MetricUpdate, store: MonitoringStore = Depends(get_store)):
    return await metrics.update_metric(store, metric_id, body)


@router.delete("/metrics/{metric_id}", response_model=ApiResponse[None])
async def api_delete_metric(metric_id: str, store: MonitoringStore = Depends(get_store)):
    return await metrics.delete_metric(store, metric_id)


# ---- logs --------------------------------------------------------------------

@router.get("/logs", response_model=PaginatedResponse[LogEntry])
async def api_list_logs(level: Optional[LogLevel] = None, service: Optional[str] = None,
                        start_time: Optional[datetime] = None, end_time: Optional[datetime] = None,
                        search: Optional[str] = None,
                        page: int = 1, limit: int = Query(config.DEFAULT_PAGE_LIMIT, le=config.MAX_PAGE_LIMIT),
                        store: MonitoringStore = Depends(get_store)):
    f = LogFilter(level=level, service=service, start_time=start_time, end_time=end_time, search=search)
    return await logs.get_logs(store, f, page, limit)


@router.get("/logs/stats", response_model=LogStats)
async def api_log_stats(start_time: datetime, end_time: datetime, store: MonitoringStore = Depends(get_store)):
    return await logs.get_log_stats(store, start_time, end_time)


@router.post("/logs", response_model=ApiResponse[LogOut])
async def api_create_log(body: LogIn, store: MonitoringStore = Depends(get_store)):
    return await logs.create_log(store, body)


# ---- alerts ------------------------------------------------------------------

@router.get("/alerts", response_model=PaginatedResponse[AlertOut])
async def api_list_alerts(status: Optional[AlertStatus] = None, severity: Optional[AlertSeverity] = None,
                          start_time: Optional[datetime] = None, end_time: Optional[datetime] = None,
                          page: int = 1, limit: int = Query(config.DEFAULT_PAGE_LIMIT, le=config.MAX_PAGE_LIMIT),
                          store: MonitoringStore = Depends(get_store)):
    f = AlertFilter(status=status, severity=severity, start_time=start_time, end_time=end_time)
    return await alerts.get_alerts(store, f, page, limit)


@router.post("/alerts", response_model=ApiResponse[AlertOut])
async def api_create_alert(body: AlertIn, store: MonitoringStore = Depends(get_store)):
    return await alerts.create_alert(store, body)


@router.patch("/alerts/{alert_id}", response_model=ApiResponse[AlertOut])
async def api_update_alert(alert_id: str, body: AlertUpdate, store: MonitoringStore = Depends(get_store)):
    return await alerts.update_alert(store, alert_id, body)


@router.post("/alerts/{alert_id}/resolve", response_model=ApiResponse[AlertOut])
async def api_resolve_alert(alert_id: str, store: MonitoringStore = Depends(get_store)):
    return await alerts.resolve_alert(store, alert_id)


@router.post("/alerts/{alert_id}/suppress", response_model=ApiResponse[AlertOut])
async def api_suppress_alert(alert_id: str, store: MonitoringStore = Depends(get_store)):
    return await alerts.suppress_alert(store, alert_id)


@router.delete("/alerts/{alert_id}", response_model=ApiResponse[None])
async def api_delete_alert(alert_id: str, store: MonitoringStore = Depends(get_store)):
    return await alerts.delete_alert(store, alert_id)


# ---- health checks -----------------------------------------------------------

@router.get("/health-checks", response_model=PaginatedResponse[HealthCheckOut])
async def api_list_health_checks(status: Optional[HealthStatus] = None, service_name: Optional[str] = None,
                                 page: int = 1, limit: int = Query(config.DEFAULT_PAGE_LIMIT, le=config.MAX_PAGE_LIMIT),
                                 store: MonitoringStore = Depends(get_store)):
    f = HealthCheckFilter(status=status, service_name=service_name)
    return await health_checks.get_health_checks(store, f, page, limit)


@router.put("/health-checks", response_model=ApiResponse[HealthCheckOut])
async def api_upsert_health_check(body: HealthCheckIn, store: MonitoringStore = Depends(get_store)):
    return await health_checks.upsert_health_check(store, body)


@router.patch("/health-checks/{check_id}", response_model=ApiResponse[HealthCheckOut])
async def api_update_health_check(check_id: str, body: HealthCheckUpdate,
                                  store: MonitoringStore = Depends(get_store)):
    return await health_checks.update_health_check(store, check_id, body)


@router.delete("/health-checks/{check_id}", response_model=ApiResponse[None])
async def api_delete_health_check(check_id: str, store: MonitoringStore = Depends(get_store)):
    return await health_checks.delete_health_check(store, check_id)


# ---- dashboard ---------------------------------------------------------------

@router.get("/dashboard", response_model=ApiResponse[DashboardSummary])
async def api_dashboard(store: MonitoringStore = Depends(get_store)):
    return await get_dashboard(store)


@router.get("/status", response_model=SystemStatus)
async def api_system_status(store: MonitoringStore = Depends(get_store)):
    summary = (await get_dashboard(store)).data
    return SystemStatus(status=overall_status(summary), summary=summary)
