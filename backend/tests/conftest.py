"""
Nexus PM - Test Fixtures
========================

Shared pytest fixtures for all tests.
"""

from collections.abc import AsyncGenerator, Callable
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from nexus.api.deps import create_access_token
from nexus.api.main import app
from nexus.core.database import Base
from nexus.core.exceptions import GenerationFailed
from nexus.core.models import TaskStatus
from nexus.core.planning.ai_generator import PlannedTask, ProjectPlan, RiskAssessment
from nexus.core.planning.notifications import DesktopNotifier
from nexus.core.planning.workspace import Workspace
from nexus.core.schemas import Project, SessionUser, Task, TeamMember
from nexus.core.storage import SqlKeyValueStore, StateRepository


# ==========================================================================
# Test Database Setup
# ==========================================================================

# Use in-memory SQLite for tests (fast)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Local noon keeps date arithmetic independent of the host timezone
TODAY = date(2025, 6, 10)
NOW = datetime.combine(TODAY, time(12, 0)).astimezone()

TEST_PASSWORD = "secret123"


class FakeClock:
    """Controllable replacement for utcnow."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeGenerator:
    """Stands in for PlanGenerator; records calls and returns canned output."""

    def __init__(self):
        self.plan = ProjectPlan(
            name="Mobile App",
            description="Customer facing mobile app",
            start_date="2025-06-10",
            end_date="2025-08-01",
            budget=12000,
            tech_stack=["Flutter"],
            tasks=[
                PlannedTask(title="Wireframes", priority="High", estimated_hours=6, deadline="2025-06-20"),
                PlannedTask(title="API client", estimated_hours=10, deadline="not a date"),
            ],
        )
        self.risks = [
            RiskAssessment(description="Store review delays", severity="High", mitigation_strategy="Submit early"),
        ]
        self.report = "# Status Report"
        self.fail = False
        self.calls: list[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise GenerationFailed("Generation failed")

    async def transcribe(self, audio_base64: str, language: str = "English", mime_type: str = "audio/webm") -> str:
        self._check("transcribe")
        return "Build a mobile app"

    async def refine_text(self, text: str) -> str:
        self.calls.append("refine_text")
        return text if self.fail else text.capitalize()

    async def parse_plan(self, text: str, team: list[TeamMember], today: Optional[date] = None) -> ProjectPlan:
        self._check("parse_plan")
        return self.plan

    async def analyze_risks(self, project: Project) -> list[RiskAssessment]:
        self._check("analyze_risks")
        return self.risks

    async def generate_report(self, project: Project) -> str:
        self._check("generate_report")
        return self.report

    async def aclose(self) -> None:
        pass


# ==========================================================================
# Database Fixtures
# ==========================================================================

@pytest_asyncio.fixture(scope="function")
async def db_tables() -> AsyncGenerator[None, None]:
    """
    Provide clean tables for each test.

    Creates all tables before test, drops after.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory(db_tables: None) -> async_sessionmaker[AsyncSession]:
    return TestingSessionLocal


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> SqlKeyValueStore:
    return SqlKeyValueStore(session_factory)


@pytest.fixture
def repository(store: SqlKeyValueStore) -> StateRepository:
    return StateRepository(store)


# ==========================================================================
# Domain Fixtures
# ==========================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def make_task() -> Callable[..., Task]:
    def factory(title: str = "Task", **kwargs: Any) -> Task:
        return Task(title=title, **kwargs)
    return factory


@pytest.fixture
def make_project(make_task: Callable[..., Task]) -> Callable[..., Project]:
    def factory(statuses: tuple[TaskStatus, ...] = (), **kwargs: Any) -> Project:
        tasks = kwargs.pop("tasks", None)
        if tasks is None:
            tasks = [make_task(f"Task {i + 1}", status=s) for i, s in enumerate(statuses)]
        kwargs.setdefault("name", "Website")
        kwargs.setdefault("start_date", TODAY)
        kwargs.setdefault("end_date", TODAY + timedelta(days=30))
        return Project(tasks=tasks, **kwargs)
    return factory


@pytest_asyncio.fixture
async def workspace(repository: StateRepository, clock: FakeClock) -> AsyncGenerator[Workspace, None]:
    """Empty, signed-out workspace over the test database."""
    ws = Workspace(
        repository,
        notifier=DesktopNotifier(enabled=False),
        clock=clock,
        seed_demo_data=False,
        reminder_interval_seconds=3600,
    )
    await ws.load()
    yield ws
    await ws.shutdown()


@pytest_asyncio.fixture
async def test_user(workspace: Workspace) -> SessionUser:
    """
    Register and sign in a test user.

    Password: secret123
    """
    return await workspace.register("Test User", "test@example.com", TEST_PASSWORD, "Developer")


# ==========================================================================
# HTTP Fixtures
# ==========================================================================

@pytest_asyncio.fixture(scope="function")
async def client(workspace: Workspace, generator: FakeGenerator) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide test HTTP client bound to the test workspace.
    """
    app.state.workspace = workspace
    app.state.generator = generator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers(test_user: SessionUser) -> dict[str, str]:
    """Get authorization headers for test user."""
    token = create_access_token(test_user.id)
    return {"Authorization": f"Bearer {token}"}
