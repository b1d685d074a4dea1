"""
Test fixtures - in-memory SQLite database, scripted classifier, HTTP client
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from taskflow import models  # noqa: F401
from taskflow.api.deps import get_classifier
from taskflow.core.database import Base, get_db
from taskflow.main import app
from taskflow.services.task_store import TaskStore

from tests.helpers import FakeClassifier


@pytest_asyncio.fixture()
async def db_session():
    """Create a fresh in-memory SQLite database for each test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def store(db_session):
    return TaskStore(db_session)


@pytest.fixture
def fake_classifier():
    return FakeClassifier()


@pytest_asyncio.fixture()
async def client(db_session, fake_classifier):
    """httpx AsyncClient bound to the FastAPI app with DB and classifier overridden"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_classifier] = lambda: fake_classifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
