from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsmonitor.core.errors import NotFoundError
from opsmonitor.core.store import MonitoringStore
from opsmonitor.crud.query import page_window, paginate, where_equals, where_labels, where_time_range
from opsmonitor.models.monitoring import Metric
from opsmonitor.schemas.monitoring import (
    ApiResponse,
    MetricFilter,
    MetricIn,
    MetricOut,
    MetricUpdate,
    PaginatedResponse,
    TimeSeriesPoint,
    as_utc,
)


async def get_metrics(store: MonitoringStore, filters: Optional[MetricFilter] = None,
                      page: int = 1, limit: int = 100) -> PaginatedResponse[MetricOut]:
    f = filters or MetricFilter()
    page_window(page, limit)

    stmt = select(Metric).where(Metric.user_id == store.user_id)
    stmt = where_equals(stmt, Metric.metric_name, f.metric_name)
    stmt = where_equals(stmt, Metric.metric_type, f.metric_type)
    stmt = where_time_range(stmt, Metric.timestamp, f.start_time, f.end_time)
    stmt = where_labels(stmt, Metric.labels, f.labels)
    stmt = stmt.order_by(Metric.timestamp.desc(), Metric.id.desc())

    async def _fetch(db: AsyncSession):
        return await paginate(db, stmt, page, limit)

    rows, pagination = await store.run("fetch metrics", _fetch)
    return PaginatedResponse[MetricOut](
        data=[MetricOut.model_validate(r) for r in rows], pagination=pagination
    )


async def get_metric_time_series(store: MonitoringStore, metric_name: str, start_time: datetime,
                                 end_time: datetime, labels: Optional[Dict[str, str]] = None) -> List[TimeSeriesPoint]:
    """
    Ascending (timestamp, value, labels) points for one metric inside [start_time, end_time].
    Gaps stay gaps; nothing is resampled.
    """
    start_time, end_time = as_utc(start_time), as_utc(end_time)
    stmt = (
        select(Metric.timestamp, Metric.metric_value, Metric.labels)
        .where(
            Metric.user_id == store.user_id,
            Metric.metric_name == metric_name,
            Metric.timestamp >= start_time,
            Metric.timestamp <= end_time,
        )
    )
    stmt = where_labels(stmt, Metric.labels, labels)
    stmt = stmt.order_by(Metric.timestamp.asc(), Metric.id.asc())

    async def _fetch(db: AsyncSession):
        return (await db.execute(stmt)).all()

    rows = await store.run("fetch metric time series", _fetch)
    return [TimeSeriesPoint(timestamp=ts, value=value, labels=lbls or {}) for ts, value, lbls in rows]


async def create_metric(store: MonitoringStore, data: MetricIn) -> ApiResponse[MetricOut]:
    values = data.model_dump(exclude_none=True)

    async def _insert(db: AsyncSession):
        m = Metric(user_id=store.user_id, **values)
        db.add(m); await db.commit(); await db.refresh(m)
        return m

    m = await store.run("create metric", _insert)
    return ApiResponse[MetricOut](data=MetricOut.model_validate(m))


async def _get_owned(db: AsyncSession, store: MonitoringStore, metric_id: str, operation: str) -> Metric:
    m = await db.get(Metric, metric_id)
    if not m or m.user_id != store.user_id:
        raise NotFoundError(operation, "metric", metric_id)
    return m


async def update_metric(store: MonitoringStore, metric_id: str, updates: MetricUpdate) -> ApiResponse[MetricOut]:
    changes = updates.model_dump(exclude_unset=True, exclude_none=True)

    async def _update(db: AsyncSession):
        m = await _get_owned(db, store, metric_id, "update metric")
        for k, v in changes.items():
            setattr(m, k, v)
        await db.commit(); await db.refresh(m)
        return m

    m = await store.run("update metric", _update)
    return ApiResponse[MetricOut](data=MetricOut.model_validate(m))


async def delete_metric(store: MonitoringStore, metric_id: str) -> ApiResponse[None]:
    async def _delete(db: AsyncSession):
        m = await _get_owned(db, store, metric_id, "delete metric")
        await db.delete(m); await db.commit()

    await store.run("delete metric", _delete)
    return ApiResponse[None](data=None)
