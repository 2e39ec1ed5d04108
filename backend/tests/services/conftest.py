"""Service test fixtures — async DB, seeded content, wired services and the API client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched so readiness probes see the test engine
    - Content rows are seeded directly (the content read model is never written by the app)

Design Decisions:
    - SQLite in-memory: fast, no external dependency; PostgreSQL-only paths
      (advisory locks, text_pattern_ops) are skipped by dialect checks
    - make_content factory over static fixtures: each test states the metadata it relies on
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from familygraph.config import get_settings
from familygraph.db.base import Base
from familygraph.infrastructure.content_repository import SqlContentRepository
from familygraph.infrastructure.database import get_db, DatabaseSessionManager
from familygraph.infrastructure.family_locks import FamilyLocks
from familygraph.infrastructure.ttl_cache import TTLCache
from familygraph.models.content_item import ContentItem
from familygraph.services.content_graph_service import ContentGraphService
from familygraph.services.relationship_store import RelationshipStore
import familygraph.api.dependencies as deps_module
import familygraph.infrastructure.database as db_module
from familygraph.main import app

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def creator_id():
    return uuid4()


@pytest.fixture
def make_content(test_db, creator_id):
    """Insert a content item and return its id."""

    async def _make(
        title="",
        platform="youtube",
        content_type="video",
        days=0,
        views=0,
        engagements=0,
        description=None,
        linked_content_ids=None,
        creator=None,
        **metrics,
    ):
        item = ContentItem(
            id=uuid4(),
            creator_id=creator or creator_id,
            platform=platform,
            content_type=content_type,
            title=title,
            description=description,
            views=views,
            engagements=engagements,
            linked_content_ids=[str(c) for c in linked_content_ids or []],
            published_at=T0 + timedelta(days=days),
            **metrics,
        )
        test_db.add(item)
        await test_db.commit()
        return item.id

    return _make


@pytest.fixture
def remove_content(test_db):
    """Delete a content row, simulating removal upstream."""

    async def _remove(content_id):
        item = await test_db.get(ContentItem, content_id)
        await test_db.delete(item)
        await test_db.commit()

    return _remove


@pytest.fixture
def cache():
    return TTLCache(ttl_seconds=900)


@pytest.fixture
def store(test_db, cache):
    return RelationshipStore(
        test_db, SqlContentRepository(test_db), FamilyLocks(), cache, get_settings(),
    )


@pytest.fixture
def service(test_db, cache):
    return ContentGraphService(test_db, locks=FamilyLocks(), cache=cache)


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
    deps_module.suggestion_cache = None
