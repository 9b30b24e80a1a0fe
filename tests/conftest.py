import pytest
import pytest_asyncio

from opsmonitor.core.database import create_all, create_store_engine, make_session_factory
from opsmonitor.core.store import MonitoringStore


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_store_engine(f"sqlite+aiosqlite:///{tmp_path / 'monitoring.db'}", echo=False)
    await create_all(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessions(engine):
    return make_session_factory(engine)


@pytest.fixture
def store(sessions):
    return MonitoringStore(sessions, "user-1")


@pytest.fixture
def other_store(sessions):
    return MonitoringStore(sessions, "user-2")
