"""Integration test fixtures for database tests.

These fixtures require a running PostgreSQL instance. Tables are created
from the ORM metadata if missing and emptied around every test.

Override connection details with WARDEN_DB_HOST, WARDEN_DB_PORT, etc.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import access.infrastructure.models  # noqa: F401
import audit.infrastructure.models  # noqa: F401
import credentials.infrastructure.models  # noqa: F401
import vault.infrastructure.models  # noqa: F401
from infrastructure.database.engines import create_write_engine
from infrastructure.database.models import Base
from infrastructure.settings import DatabaseSettings


@pytest.fixture(scope="session")
def integration_db_settings() -> DatabaseSettings:
    """Database settings for integration tests."""
    return DatabaseSettings(
        host=os.getenv("WARDEN_DB_HOST", "localhost"),
        port=int(os.getenv("WARDEN_DB_PORT", "5432")),
        database=os.getenv("WARDEN_DB_DATABASE", "warden"),
        username=os.getenv("WARDEN_DB_USERNAME", "warden"),
        password=SecretStr(os.getenv("WARDEN_DB_PASSWORD", "warden_dev_password")),
        pool_max_connections=20,
    )


@pytest_asyncio.fixture
async def engine(
    integration_db_settings: DatabaseSettings,
) -> AsyncGenerator[AsyncEngine, None]:
    """Provide an engine over a schema with every table empty."""
    engine = create_write_engine(integration_db_settings)
    table_names = ", ".join(table.name for table in Base.metadata.sorted_tables)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text(f"TRUNCATE {table_names} CASCADE"))

    yield engine

    async with engine.begin() as conn:
        await conn.execute(text(f"TRUNCATE {table_names} CASCADE"))
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory for tests that need several independent sessions."""
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def async_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide an async session for integration tests."""
    async with session_factory() as session:
        yield session
