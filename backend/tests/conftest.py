"""
Shared test fixtures.

Uses an in-memory SQLite database for fast testing.
JSONB columns are compiled as JSON for SQLite compatibility.
For integration tests against PostgreSQL, use docker compose.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.ext.compiler import compiles

from stockroom.api.routes.imports import sessions
from stockroom.core.database import Base, get_db
from stockroom.main import app
from stockroom.models.core import Category, Item, Supplier  # noqa: F401
from stockroom.schemas.catalog import CatalogEntity
from stockroom.services.catalog_store import SqlCatalogStore


# ─── SQLite compatibility: JSONB → JSON, UUID → CHAR(36) ──────

@compiles(JSONB, "sqlite")
def compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@compiles(UUID, "sqlite")
def compile_uuid_sqlite(type_, compiler, **kw):
    return "CHAR(36)"


# Use SQLite async for tests (aiosqlite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(TEST_DATABASE_URL, echo=False)
test_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def clear_sessions():
    """Import sessions are process state; start every test with none."""
    yield
    sessions.clear()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session."""
    async with test_session() as session:
        yield session


@pytest_asyncio.fixture
async def store(db_session: AsyncSession) -> SqlCatalogStore:
    return SqlCatalogStore(db_session)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide a test HTTP client with database override."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ─── Helper factories ─────────────────────────────────────────

@pytest_asyncio.fixture
async def make_supplier(db_session: AsyncSession):
    """Factory fixture for creating suppliers."""
    async def _make(name: str, code: str | None = None) -> CatalogEntity:
        supplier = Supplier(name=name, code=code or name.upper().replace(" ", "")[:20])
        db_session.add(supplier)
        await db_session.flush()
        await db_session.commit()
        return CatalogEntity.model_validate(supplier)
    return _make


@pytest_asyncio.fixture
async def make_category(db_session: AsyncSession):
    """Factory fixture for creating categories."""
    async def _make(name: str, code: str | None = None) -> CatalogEntity:
        category = Category(name=name, code=code or name.upper().replace(" ", "")[:20])
        db_session.add(category)
        await db_session.flush()
        await db_session.commit()
        return CatalogEntity.model_validate(category)
    return _make
