# opsmonitor/metrics.py
from prometheus_client import Counter, Gauge, Histogram

# === Core metrics (definitions ONLY here) ===
store_operations_total = Counter(
    "store_operations_total", "Store round trips", ["operation", "outcome"]
)

store_operation_latency_seconds = Histogram(
    "store_operation_latency_seconds", "Store round-trip latency", ["operation"]
)

alert_transitions_total = Counter(
    "alert_transitions_total", "Alert lifecycle transitions", ["status"]
)

health_check_upserts_total = Counter(
    "health_check_upserts_total", "Health-check upserts", ["status"]
)

dashboard_aggregations_total = Counter(
    "dashboard_aggregations_total", "Dashboard aggregations", ["outcome"]
)

active_alerts_gauge = Gauge(
    "active_alerts_by_severity", "Active alerts in the last day by severity", ["severity"]
)

SEVERITIES = ("low", "medium", "high", "critical")


def init_metrics_zero():
    # create label combos at 0 so Grafana never sees “no data”
    for s in SEVERITIES:
        active_alerts_gauge.labels(severity=s).set(0)
    for st in ("resolved", "suppressed"):
        alert_transitions_total.labels(status=st).inc(0)
    for st in ("healthy", "degraded", "unhealthy"):
        health_check_upserts_total.labels(status=st).inc(0)
    for outcome in ("ok", "error"):
        dashboard_aggregations_total.labels(outcome=outcome).inc(0)


def metric_label(operation: str) -> str:
    return operation.replace(" ", "_")


# rows of (status, severity) from the dashboard alert window
def refresh_active_alerts_gauge(rows) -> None:
    counts = {s: 0 for s in SEVERITIES}
    for status, severity in rows:
        if status == "active":
            counts[severity] = counts.get(severity, 0) + 1
    for sev in SEVERITIES:
        active_alerts_gauge.labels(severity=sev).set(counts.get(sev, 0))
