"""Tenant-scoped record store handle.

The handle is built by the entry point (or a test) around an async session
factory and passed to every CRUD function. Each call opens its own session so
independent reads can run concurrently.
"""
from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opsmonitor.core.errors import StoreError
from opsmonitor.metrics import metric_label, store_operation_latency_seconds, store_operations_total

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MonitoringStore:
    def __init__(self, sessions: async_sessionmaker, user_id: str):
        if not user_id:
            raise ValueError("user_id is required")
        self.sessions = sessions
        self.user_id = user_id

    async def run(self, operation: str, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run one round trip. Store failures come back as StoreError("Failed to <operation>: ...")."""
        label = metric_label(operation)
        started = time.perf_counter()
        try:
            async with self.sessions() as db:
                result = await fn(db)
        except (SQLAlchemyError, OSError) as e:
            store_operations_total.labels(operation=label, outcome="error").inc()
            reason = getattr(e, "orig", None) or e
            logger.warning("%s failed for user=%s: %s", operation, self.user_id, reason)
            raise StoreError(operation, str(reason)) from e
        except Exception:
            store_operations_total.labels(operation=label, outcome="error").inc()
            raise
        finally:
            store_operation_latency_seconds.labels(operation=label).observe(time.perf_counter() - started)
        store_operations_total.labels(operation=label, outcome="ok").inc()
        logger.debug("%s ok for user=%s", operation, self.user_id)
        return result
