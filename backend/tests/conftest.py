"""
County Directory Backend: Test Configuration (conftest.py)
============================================================

What:  Shared pytest fixtures for the test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite,
       StaticPool so all sessions share the one connection). Route tests
       talk to the FastAPI app through httpx's ASGITransport with the
       session dependency pointed at that database.

Fixture Hierarchy:
    ├── db_engine:        in-memory engine with all tables created
    ├── db_session:       AsyncSession for service-level tests
    ├── mock_db_session:  AsyncMock session for failure-path tests
    ├── test_client:      httpx AsyncClient bound to the app
    ├── sample_icon_bytes / sample_jpeg_bytes
    └── make_company:     inserts a referenced Company row
"""

import os
import tempfile

# Must be set before county_api.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="county_api_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from county_api.database import Base, get_db_session
from county_api.models.company import Company
from county_api.models.county import County  # noqa: F401


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    A MagicMock that simulates AsyncSession behavior.

    Usage:
        mock_db_session.execute.side_effect = RuntimeError("connection lost")
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the app in-process.

    raise_app_exceptions=False: unexpected errors come back as the 500 JSON
    body produced by the catch-all handler instead of propagating.
    """
    from county_api.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_icon_bytes():
    """Minimal PNG: signature plus an IHDR chunk header."""
    return (
        b"\x89PNG\r\n\x1a\n"
        b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
        b"\x1f\x15\xc4\x89"
    )


@pytest.fixture
def sample_jpeg_bytes():
    """JFIF header plus end-of-image marker."""
    return (
        b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
        b"\xff\xd9"
    )


@pytest.fixture
def county_payload():
    return {
        "name": "Harris County",
        "slug": "harris-county",
        "excerpt": "Largest county in Texas.",
    }


@pytest_asyncio.fixture
async def make_company(session_factory):
    async def _make(name: str) -> Company:
        async with session_factory() as session:
            company = Company(company_name=name)
            session.add(company)
            await session.commit()
            return company
    return _make
