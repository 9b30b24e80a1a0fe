from __future__ import annotations
from collections import Counter
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsmonitor.core.store import MonitoringStore
from opsmonitor.crud.query import page_window, paginate, where_contains, where_equals, where_time_range
from opsmonitor.models.monitoring import Log
from opsmonitor.schemas.monitoring import (
    ApiResponse,
    LogEntry,
    LogFilter,
    LogIn,
    LogOut,
    LogStats,
    PaginatedResponse,
    as_utc,
)


async def get_logs(store: MonitoringStore, filters: Optional[LogFilter] = None,
                   page: int = 1, limit: int = 100) -> PaginatedResponse[LogEntry]:
    f = filters or LogFilter()
    page_window(page, limit)

    stmt = select(Log).where(Log.user_id == store.user_id)
    stmt = where_equals(stmt, Log.level, f.level)
    stmt = where_equals(stmt, Log.service, f.service)
    stmt = where_time_range(stmt, Log.timestamp, f.start_time, f.end_time)
    stmt = where_contains(stmt, Log.message, f.search)
    stmt = stmt.order_by(Log.timestamp.desc(), Log.id.desc())

    async def _fetch(db: AsyncSession):
        return await paginate(db, stmt, page, limit)

    rows, pagination = await store.run("fetch logs", _fetch)
    return PaginatedResponse[LogEntry](
        data=[LogEntry.model_validate(r) for r in rows], pagination=pagination
    )


async def create_log(store: MonitoringStore, data: LogIn) -> ApiResponse[LogOut]:
    values = data.model_dump(exclude_none=True)

    async def _insert(db: AsyncSession):
        row = Log(user_id=store.user_id, **values)
        db.add(row); await db.commit(); await db.refresh(row)
        return row

    row = await store.run("create log", _insert)
    return ApiResponse[LogOut](data=LogOut.model_validate(row))


async def get_log_stats(store: MonitoringStore, start_time: datetime, end_time: datetime) -> LogStats:
    """Count logs in [start_time, end_time] by level and by service."""
    start_time, end_time = as_utc(start_time), as_utc(end_time)
    stmt = select(Log.level, Log.service).where(
        Log.user_id == store.user_id,
        Log.timestamp >= start_time,
        Log.timestamp <= end_time,
    )

    async def _fetch(db: AsyncSession):
        return (await db.execute(stmt)).all()

    rows = await store.run("fetch log stats", _fetch)
    by_level = Counter(level for level, _ in rows)
    by_service = Counter(service for _, service in rows)
    return LogStats(total=len(rows), by_level=dict(by_level), by_service=dict(by_service))
