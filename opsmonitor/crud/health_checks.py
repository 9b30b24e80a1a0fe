from __future__ import annotations
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from opsmonitor.core.database import utcnow
from opsmonitor.core.errors import NotFoundError
from opsmonitor.core.store import MonitoringStore
from opsmonitor.crud.query import page_window, paginate, where_equals
from opsmonitor.metrics import health_check_upserts_total
from opsmonitor.models.monitoring import HealthCheck
from opsmonitor.schemas.monitoring import (
    ApiResponse,
    HealthCheckFilter,
    HealthCheckIn,
    HealthCheckOut,
    HealthCheckUpdate,
    PaginatedResponse,
)

logger = logging.getLogger(__name__)

# columns overwritten when (service_name, user_id) already exists
UPSERT_COLUMNS = ("endpoint", "status", "response_time", "last_check", "error_message", "metadata")

_NATIVE_UPSERT = {"postgresql": pg_insert, "sqlite": sqlite_insert}


async def get_health_checks(store: MonitoringStore, filters: Optional[HealthCheckFilter] = None,
                            page: int = 1, limit: int = 100) -> PaginatedResponse[HealthCheckOut]:
    f = filters or HealthCheckFilter()
    page_window(page, limit)

    stmt = select(HealthCheck).where(HealthCheck.user_id == store.user_id)
    stmt = where_equals(stmt, HealthCheck.status, f.status)
    stmt = where_equals(stmt, HealthCheck.service_name, f.service_name)
    stmt = stmt.order_by(HealthCheck.last_check.desc(), HealthCheck.id.desc())

    async def _fetch(db: AsyncSession):
        return await paginate(db, stmt, page, limit)

    rows, pagination = await store.run("fetch health checks", _fetch)
    return PaginatedResponse[HealthCheckOut](
        data=[HealthCheckOut.model_validate(r) for r in rows], pagination=pagination
    )


async def upsert_health_check(store: MonitoringStore, data: HealthCheckIn) -> ApiResponse[HealthCheckOut]:
    """
    Insert-or-update keyed by (service_name, user_id).

    PostgreSQL and SQLite get a single INSERT .. ON CONFLICT DO UPDATE. Other
    dialects fall back to select-then-write, which can race between concurrent
    callers for the same service; the unique constraint turns the loser into a
    StoreError instead of a duplicate row.
    """
    row = data.model_dump()
    row["last_check"] = row.get("last_check") or utcnow()
    row["user_id"] = store.user_id

    async def _upsert(db: AsyncSession):
        natural_key = (HealthCheck.user_id == store.user_id,
                       HealthCheck.service_name == data.service_name)
        insert = _NATIVE_UPSERT.get(db.get_bind().dialect.name)
        if insert is not None:
            table = HealthCheck.__table__
            ins = insert(table).values(row)
            stmt = ins.on_conflict_do_update(
                index_elements=[table.c.service_name, table.c.user_id],
                set_={**{c: ins.excluded[c] for c in UPSERT_COLUMNS}, "updated_at": utcnow()},
            )
            await db.execute(stmt)
            hc = (await db.execute(select(HealthCheck).where(*natural_key))).scalar_one()
            await db.commit()
            return hc

        hc = (await db.execute(select(HealthCheck).where(*natural_key))).scalar_one_or_none()
        if hc is None:
            hc = HealthCheck(user_id=store.user_id, service_name=data.service_name)
            db.add(hc)
        for c in UPSERT_COLUMNS:
            setattr(hc, "check_metadata" if c == "metadata" else c, row[c])
        await db.commit(); await db.refresh(hc)
        return hc

    hc = await store.run("upsert health check", _upsert)
    health_check_upserts_total.labels(status=hc.status).inc()
    logger.info("health check %s/%s -> %s", store.user_id, hc.service_name, hc.status)
    return ApiResponse[HealthCheckOut](data=HealthCheckOut.model_validate(hc))


async def update_health_check(store: MonitoringStore, check_id: str,
                              updates: HealthCheckUpdate) -> ApiResponse[HealthCheckOut]:
    changes = updates.model_dump(exclude_unset=True)
    # status / response_time / last_check / metadata cannot be cleared; error_message can
    changes = {k: v for k, v in changes.items() if v is not None or k == "error_message"}

    async def _update(db: AsyncSession):
        hc = await db.get(HealthCheck, check_id)
        if not hc or hc.user_id != store.user_id:
            raise NotFoundError("update health check", "health check", check_id)
        for k, v in changes.items():
            setattr(hc, "check_metadata" if k == "metadata" else k, v)
        await db.commit(); await db.refresh(hc)
        return hc

    hc = await store.run("update health check", _update)
    return ApiResponse[HealthCheckOut](data=HealthCheckOut.model_validate(hc))


async def delete_health_check(store: MonitoringStore, check_id: str) -> ApiResponse[None]:
    async def _delete(db: AsyncSession):
        hc = await db.get(HealthCheck, check_id)
        if not hc or hc.user_id != store.user_id:
            raise NotFoundError("delete health check", "health check", check_id)
        await db.delete(hc); await db.commit()

    await store.run("delete health check", _delete)
    return ApiResponse[None](data=None)
