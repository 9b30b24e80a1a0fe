from typing import List, Sequence

from opsmonitor.schemas.monitoring import DashboardSummary, SeriesStats, TimeSeriesPoint

TREND_BAND = 0.05


def _mean(vals: Sequence[float]) -> float:
    return sum(vals) / len(vals) if vals else 0.0


def series_trend(values: List[float], band: float = TREND_BAND) -> str:
    # second half vs first half; an odd middle point goes to the second half
    if len(values) < 2:
        return "stable"
    mid = len(values) // 2
    first = _mean(values[:mid]); second = _mean(values[mid:])
    if second > first * (1 + band):
        return "up"
    if second < first * (1 - band):
        return "down"
    return "stable"


def summarize_series(points: Sequence[TimeSeriesPoint]) -> SeriesStats:
    values = [p.value for p in points]
    if not values:
        return SeriesStats()
    return SeriesStats(
        current=values[-1],
        average=_mean(values),
        minimum=min(values),
        maximum=max(values),
        trend=series_trend(values),
        points=len(values),
    )


def overall_status(summary: DashboardSummary) -> str:
    alerts, hc = summary.alerts, summary.health_checks
    if alerts.critical > 0:
        return "critical"
    if alerts.active > 0 or hc.degraded_services > 0:
        return "warning"
    if hc.healthy_services == hc.total_services:
        return "healthy"
    return "degraded"
