from __future__ import annotations
from typing import Optional


class MonitoringError(Exception):
    """Base error for the monitoring layer. Carries the failing operation name."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.detail = message
        super().__init__(f"Failed to {operation}: {message}")


class StoreError(MonitoringError):
    """Store round trip failed (network, auth, rejected query)."""


class NotFoundError(StoreError):
    def __init__(self, operation: str, kind: str, record_id: Optional[str]):
        self.kind = kind
        self.record_id = record_id
        super().__init__(operation, f"{kind} {record_id} not found")


class DashboardError(MonitoringError):
    """One of the dashboard sub-reads failed; no partial summary is produced."""

    def __init__(self, message: str):
        super().__init__("fetch dashboard data", message)


class AlertTransitionError(ValueError):
    def __init__(self, alert_id: str, current: str, target: str):
        self.alert_id = alert_id
        self.current = current
        self.target = target
        super().__init__(f"Alert {alert_id} is '{current}'; cannot move to '{target}'")
