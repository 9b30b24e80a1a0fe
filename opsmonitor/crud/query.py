"""Filter / pagination helpers shared by the monitoring CRUD modules.

A filter is a sparse pydantic model: each field that is set adds exactly one
constraint. Pages are 1-based; the store sees a zero-based [from, to] window.
"""
from __future__ import annotations
import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from opsmonitor.schemas.monitoring import Pagination


def page_window(page: int, limit: int) -> Tuple[int, int]:
    """Return the inclusive zero-based row window for a 1-based page."""
    if page < 1:
        raise ValueError(f"page must be >= 1 (got {page})")
    if limit <= 0:
        raise ValueError(f"limit must be > 0 (got {limit})")
    start = (page - 1) * limit
    return start, start + limit - 1


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


def where_equals(stmt: Select, column, value) -> Select:
    if value is None:
        return stmt
    return stmt.where(column == value)


def where_time_range(stmt: Select, column, start: Optional[datetime], end: Optional[datetime]) -> Select:
    if start is not None:
        stmt = stmt.where(column >= start)
    if end is not None:
        stmt = stmt.where(column <= end)
    return stmt


def where_labels(stmt: Select, column, labels: Optional[Dict[str, str]]) -> Select:
    # each pair must be present with the exact value; pairs are ANDed
    for key, value in (labels or {}).items():
        stmt = stmt.where(column[key].as_string() == value)
    return stmt


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def where_contains(stmt: Select, column, term: Optional[str]) -> Select:
    if not term:
        return stmt
    return stmt.where(column.ilike(f"%{_escape_like(term)}%", escape="\\"))


async def paginate(db: AsyncSession, stmt: Select, page: int, limit: int) -> Tuple[Sequence, Pagination]:
    """Run the windowed query and an independent count over the same filters."""
    start, _end = page_window(page, limit)
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()
    rows: List = list((await db.execute(stmt.offset(start).limit(limit))).scalars().all())
    return rows, Pagination(page=page, limit=limit, total=total, pages=page_count(total, limit))
