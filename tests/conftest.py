"""
Pytest Configuration and Fixtures

Shared test fixtures for unit and API tests. Tests run against an
in-memory SQLite database and a fake progression feed.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("ENVIRONMENT", "local")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.orm import configure_mappers  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from codereview.core.database import get_db  # noqa: E402
from codereview.core.models import (  # noqa: E402, F401 - imported for SQLAlchemy registration
    Audit,
    AuditResult,
    Base,
    Student,
)
from codereview.zone01 import ProgressEntry, Zone01Error, get_progression_feed  # noqa: E402

# Ensure all mappers are configured
configure_mappers()


class FakeProgressionFeed:
    """In-memory progression feed keyed by promo id."""

    def __init__(self):
        self.entries: dict[str, list[ProgressEntry]] = {}
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def add(
        self,
        promo_id: str,
        login: str,
        project_name: str,
        group_id: str,
        status: str = "finished",
        **extra,
    ) -> ProgressEntry:
        entry = ProgressEntry(
            login=login,
            project_name=project_name,
            group_id=group_id,
            status=status,
            **extra,
        )
        self.entries.setdefault(promo_id, []).append(entry)
        return entry

    def add_group(
        self,
        promo_id: str,
        project_name: str,
        group_id: str,
        logins: list[str],
        status: str = "finished",
    ) -> None:
        for login in logins:
            self.add(promo_id, login, project_name, group_id, status)

    def fail(self, promo_id: str) -> None:
        self.failing.add(promo_id)

    async def fetch_promotion_progressions(self, promo_id: str) -> list[ProgressEntry]:
        self.calls.append(promo_id)
        if promo_id in self.failing:
            raise Zone01Error(f"Zone01 API error: 503 for promotion {promo_id}")
        return list(self.entries.get(promo_id, []))


class FakeDropoutRegistry:
    def __init__(self, logins: set[str] | None = None):
        self.logins = {login.lower() for login in logins or set()}

    async def get_dropout_logins(self) -> set[str]:
        return set(self.logins)


@pytest.fixture
async def async_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncSession:
    """Create database session for testing."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session


@pytest.fixture
def fake_feed() -> FakeProgressionFeed:
    return FakeProgressionFeed()


@pytest.fixture
def fake_dropouts() -> FakeDropoutRegistry:
    return FakeDropoutRegistry()


@pytest.fixture
async def client(db_session, fake_feed):
    """Create test client with database and progression feed overrides.

    The dropout registry stays database backed, so tests mark dropouts by
    adding Student rows.
    """

    async def override_get_db():
        yield db_session

    from codereview.main import app

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_progression_feed] = lambda: fake_feed
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
