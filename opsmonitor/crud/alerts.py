from __future__ import annotations
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsmonitor.core.database import utcnow
from opsmonitor.core.errors import AlertTransitionError, NotFoundError
from opsmonitor.core.store import MonitoringStore
from opsmonitor.crud.query import page_window, paginate, where_equals, where_time_range
from opsmonitor.metrics import alert_transitions_total
from opsmonitor.models.monitoring import Alert
from opsmonitor.schemas.monitoring import (
    AlertFilter,
    AlertIn,
    AlertOut,
    AlertUpdate,
    ApiResponse,
    PaginatedResponse,
)

logger = logging.getLogger(__name__)

# active -> resolved | suppressed; both terminal
TRANSITIONS = {"active": {"resolved", "suppressed"}}


def check_transition(alert_id: str, current: str, target: str) -> None:
    if target == current == "active":
        return
    if target not in TRANSITIONS.get(current, set()):
        raise AlertTransitionError(alert_id, current, target)


async def get_alerts(store: MonitoringStore, filters: Optional[AlertFilter] = None,
                     page: int = 1, limit: int = 100) -> PaginatedResponse[AlertOut]:
    f = filters or AlertFilter()
    page_window(page, limit)

    stmt = select(Alert).where(Alert.user_id == store.user_id)
    stmt = where_equals(stmt, Alert.status, f.status)
    stmt = where_equals(stmt, Alert.severity, f.severity)
    stmt = where_time_range(stmt, Alert.triggered_at, f.start_time, f.end_time)
    stmt = stmt.order_by(Alert.triggered_at.desc(), Alert.id.desc())

    async def _fetch(db: AsyncSession):
        return await paginate(db, stmt, page, limit)

    rows, pagination = await store.run("fetch alerts", _fetch)
    return PaginatedResponse[AlertOut](
        data=[AlertOut.model_validate(r) for r in rows], pagination=pagination
    )


async def create_alert(store: MonitoringStore, data: AlertIn) -> ApiResponse[AlertOut]:
    values = data.model_dump(exclude_none=True)

    async def _insert(db: AsyncSession):
        a = Alert(user_id=store.user_id, status="active", **values)
        db.add(a); await db.commit(); await db.refresh(a)
        return a

    a = await store.run("create alert", _insert)
    logger.info("alert %s created (%s, severity=%s)", a.id, a.alert_name, a.severity)
    return ApiResponse[AlertOut](data=AlertOut.model_validate(a))


async def _get_owned(db: AsyncSession, store: MonitoringStore, alert_id: str, operation: str) -> Alert:
    a = await db.get(Alert, alert_id)
    if not a or a.user_id != store.user_id:
        raise NotFoundError(operation, "alert", alert_id)
    return a


async def update_alert(store: MonitoringStore, alert_id: str, updates: AlertUpdate) -> ApiResponse[AlertOut]:
    """Targeted update keyed by id. Status changes follow the lifecycle; resolved_at is set on resolve."""
    changes = updates.model_dump(exclude_unset=True, exclude_none=True)

    async def _update(db: AsyncSession):
        a = await _get_owned(db, store, alert_id, "update alert")
        target = changes.get("status")
        if target is not None:
            check_transition(a.id, a.status, target)
            if target == "resolved":
                a.resolved_at = utcnow()
        for k, v in changes.items():
            setattr(a, k, v)
        await db.commit(); await db.refresh(a)
        return a

    a = await store.run("update alert", _update)
    if changes.get("status") in ("resolved", "suppressed"):
        alert_transitions_total.labels(status=a.status).inc()
        logger.info("alert %s -> %s", a.id, a.status)
    return ApiResponse[AlertOut](data=AlertOut.model_validate(a))


async def resolve_alert(store: MonitoringStore, alert_id: str) -> ApiResponse[AlertOut]:
    return await update_alert(store, alert_id, AlertUpdate(status="resolved"))


async def suppress_alert(store: MonitoringStore, alert_id: str) -> ApiResponse[AlertOut]:
    return await update_alert(store, alert_id, AlertUpdate(status="suppressed"))


async def delete_alert(store: MonitoringStore, alert_id: str) -> ApiResponse[None]:
    async def _delete(db: AsyncSession):
        a = await _get_owned(db, store, alert_id, "delete alert")
        await db.delete(a); await db.commit()

    await store.run("delete alert", _delete)
    return ApiResponse[None](data=None)
