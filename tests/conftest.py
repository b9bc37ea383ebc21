
import pytest
import pytest_asyncio

from tests.helpers.fakes import REFERENCE_TIME, InMemoryStore, ManualClock, ManualTimer, RecordingSink
from voiceflow.core.database import Base, build_engine, build_session_factory, init_db
from voiceflow.services.notification_service import ReminderSignal
from voiceflow.services.scheduler import ReminderScheduler
from voiceflow.services.store import SqlAlchemyEntityStore


@pytest.fixture
def clock():
    return ManualClock(REFERENCE_TIME)


@pytest.fixture
def timer(clock):
    return ManualTimer(clock)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def signal():
    return ReminderSignal()


@pytest.fixture
def fired(signal):
    """Every ReminderFired published during the test."""
    received = []
    signal.subscribe(received.append)
    return received


@pytest.fixture
def scheduler(timer, sink, signal, clock):
    return ReminderScheduler(timer, sink=sink, signal=signal, clock=clock)


@pytest.fixture
def memory_store(clock):
    return InMemoryStore(clock)


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'voiceflow.db'}")
    await init_db(engine)
    try:
        yield SqlAlchemyEntityStore(build_session_factory(engine))
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()
