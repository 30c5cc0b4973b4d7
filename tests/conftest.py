"""
Test Configuration and Fixtures

Provides the in-memory database, application clients and token helpers
shared by the whole suite.
"""

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("IP_FILTER_ENABLED", "false")
os.environ.setdefault("WEBHOOK_MAIL_RUN_IN_API", "false")
os.environ.setdefault("MAIL_BACKOFF_BASE_SECONDS", "0")
os.environ.setdefault("AIRWALLEX_BACKOFF_BASE_SECONDS", "0")


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (may use real services)")
    config.addinivalue_line("markers", "api: API endpoint tests")


def pytest_collection_modifyitems(config, items):
    """
    Auto-assign tier markers so we can run `pytest -m unit` or `pytest -m api`.

    Convention:
    - tests/api/** => api
    - everything else => unit
    """
    for item in items:
        path = str(getattr(item, "fspath", ""))
        if item.get_closest_marker("api") or item.get_closest_marker("unit"):
            continue
        if "/tests/api/" in path or "\\tests\\api\\" in path:
            item.add_marker(pytest.mark.api)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory SQLite schema per test."""
    from src.db.models import Base

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def session_factory(db_session):
    """Stand-in for `get_db_session` that hands out the test session."""
    from contextlib import asynccontextmanager

    @asynccontextmanager
    async def factory():
        yield db_session
        await db_session.flush()

    return factory


# =============================================================================
# AUTHENTICATION FIXTURES
# =============================================================================


@pytest.fixture
def user_headers() -> dict[str, str]:
    from tests.support.factories import make_token

    return {"Authorization": f"Bearer {make_token('user')}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    from tests.support.factories import make_token

    return {"Authorization": f"Bearer {make_token('administrator', sub='1')}"}


# =============================================================================
# APPLICATION FIXTURES
# =============================================================================


@pytest.fixture
def mock_mail_service():
    """Mail service whose send helpers succeed without touching a provider."""
    from src.mail.message import SendResult

    service = AsyncMock()
    service.send_html_mail.return_value = SendResult(provider="smtp", message_id="msg_1", accepted=["x@example.com"])
    return service


@pytest.fixture
def app(db_session):
    """FastAPI application bound to the test session."""
    from src.api.main import app as fastapi_app
    from src.db.client import get_session

    async def get_test_session():
        yield db_session
        await db_session.flush()

    fastapi_app.dependency_overrides[get_session] = get_test_session

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
