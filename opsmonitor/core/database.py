import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from opsmonitor.core import config

# Single source of truth for Base
Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def create_store_engine(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Build the async engine. Owned by the process entry point, not by this module."""
    url = url or config.DATABASE_URL
    kwargs = {"echo": config.DB_ECHO if echo is None else echo}
    if not url.startswith("sqlite"):
        kwargs.update(pool_pre_ping=True, pool_recycle=300)
    return create_async_engine(url, **kwargs)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    # imported for side effect: registers the tables on Base.metadata
    from opsmonitor import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
