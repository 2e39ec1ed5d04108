"""Database Session Manager — verifies engine options and readiness checks.

Tests:
    - Pool sizing applies to PostgreSQL only
    - Readiness reports a healthy schema once tables exist, "missing" before
"""

from familygraph.db.base import Base
from familygraph.infrastructure.database import DatabaseSessionManager, engine_options


def test_pool_options_for_postgres_only():
    pg = engine_options("postgresql+asyncpg://u:p@db/graph", pool_size=5, max_overflow=2)
    assert pg["pool_size"] == 5
    assert pg["pool_pre_ping"] is True
    assert engine_options("sqlite+aiosqlite:///:memory:", 5, 2) == {}


async def test_readiness_reports_missing_schema_then_healthy():
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    assert manager.dialect == "sqlite"

    assert await manager.check() == {"database": "healthy", "schema": "missing"}

    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    assert await manager.check() == {"database": "healthy", "schema": "healthy"}
    await manager.engine.dispose()
