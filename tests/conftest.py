"""
Shared test fixtures for the TimeEvidence test suite.

Async throughout (aiosqlite + AsyncSession), one in-memory database per test.
"""

import os
import sys
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["API_KEY"] = "test-key"
os.environ["REQUIRE_API_KEY"] = "true"
os.environ["TIMEZONE"] = "UTC"
os.environ["SMS_PROVIDER"] = ""

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from timeevidence.api.v1.deps import get_db, get_dispatcher
from timeevidence.db.base import Base
from timeevidence.main import app
from timeevidence.models.employee import Employee
from timeevidence.models.supervisor import Supervisor
from timeevidence.models.work_schedule import WorkSchedule
from timeevidence.services import card_registry
from timeevidence.services.notifications import NotificationDispatcher

API_KEY = "test-key"

# One shared connection so every session sees the same in-memory database
test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


# ── Notification capture ────────────────────────────────────────────
class RecordingDispatcher(NotificationDispatcher):
    """Keeps every intent it is asked to deliver instead of sending it."""

    def __init__(self, fail: bool = False) -> None:
        super().__init__()
        self.sent = []
        self.fail = fail

    async def dispatch(self, intent) -> bool:
        if self.fail:
            raise RuntimeError("transport down")
        self.sent.append(intent)
        return True


@pytest.fixture
def dispatcher():
    recorder = RecordingDispatcher()
    app.dependency_overrides[get_dispatcher] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_dispatcher, None)


# ── Clients & sessions ──────────────────────────────────────────────
@pytest.fixture
async def async_client(dispatcher) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app, presenting the API key."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Api-Key": API_KEY},
    ) as client:
        yield client


@pytest.fixture
async def anonymous_client() -> AsyncGenerator[AsyncClient, None]:
    """Client without any credentials."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


# ── Seed helpers ────────────────────────────────────────────────────
OFFICE_DAYS = "Monday,Tuesday,Wednesday,Thursday,Friday"
OFFICE_HOURS = '[{"start": "09:00:00", "end": "17:00:00"}]'


async def make_schedule(
    db: AsyncSession, days: str = OFFICE_DAYS, windows: str = OFFICE_HOURS, name: str = "Office"
) -> WorkSchedule:
    schedule = WorkSchedule(schedule_name=name, selected_days=days, time_ranges=windows)
    db.add(schedule)
    await db.commit()
    await db.refresh(schedule)
    return schedule


async def make_supervisor(
    db: AsyncSession,
    channel: str = "email",
    email: str = "boss@example.com",
    phone: str | None = None,
) -> Supervisor:
    supervisor = Supervisor(
        name="Sam",
        surname="Boss",
        email=email,
        phone_number=phone,
        notification_channel=channel,
    )
    db.add(supervisor)
    await db.commit()
    await db.refresh(supervisor)
    return supervisor


async def make_employee(
    db: AsyncSession,
    name: str = "Ann",
    surname: str = "Lee",
    *,
    card_id: str | None = None,
    access: bool = True,
    supervisor: Supervisor | None = None,
    schedule: WorkSchedule | None = None,
) -> Employee:
    employee = Employee(
        name=name,
        surname=surname,
        position="Engineer",
        supervisor_id=supervisor.id if supervisor else None,
        work_schedule_id=schedule.id if schedule else None,
    )
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    if card_id is not None:
        employee = await card_registry.assign_card(db, employee.id, card_id, grant_access=access)
    return employee
