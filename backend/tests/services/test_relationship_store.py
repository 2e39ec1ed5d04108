"""Relationship Store — verifies edge validation, the DAG invariant and path maintenance.

Invariants:
    - A -> B -> C then C -> A (any type) is rejected as a cycle
    - Duplicate (source, target) pairs and second PARENT edges are rejected
    - PARENT create/update/delete keeps every descendant path consistent
    - Deleting a PARENT edge turns the former target into a new root
    - Unknown relationship ids raise NotFoundError
    - No PARENT write places a node deeper than family_max_depth
    - Concurrent writers on one family are serialized: one parent wins
    - Families that keep moving while locks are taken end in ConcurrencyError
"""

import asyncio
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from familygraph.config import Settings
from familygraph.core.domain_types import CreationMethod, RelationshipType
from familygraph.core.errors import (
    ConcurrencyError, ConflictError, NotFoundError, ResourceLimitError, ValidationError,
)
from familygraph.core.hierarchy_paths import is_valid_path
from familygraph.db.base import Base
from familygraph.infrastructure.content_repository import SqlContentRepository
from familygraph.infrastructure.family_locks import FamilyLocks
from familygraph.models.content_item import ContentItem
from familygraph.services.relationship_store import RelationshipStore

PARENT = RelationshipType.PARENT


@pytest.fixture
async def chain(make_content, store):
    """A --PARENT--> B --PARENT--> C"""
    a = await make_content("A")
    b = await make_content("B")
    c = await make_content("C")
    ab = await store.create(a, b, PARENT)
    bc = await store.create(b, c, PARENT)
    return a, b, c, ab, bc


async def test_parent_edges_maintain_paths(chain, store):
    a, b, c, ab, bc = chain
    assert ab.path == f"{a.hex}.{b.hex}"
    assert bc.path == f"{a.hex}.{b.hex}.{c.hex}"
    assert bc.depth == 2
    assert await store.path_of(a) == a.hex
    assert await store.root_of(c) == a


async def test_manual_edge_defaults_to_full_confidence(chain):
    *_, ab, _ = chain
    assert ab.confidence == 1.0
    assert ab.creation_method == CreationMethod.MANUAL.value


async def test_closing_edge_is_rejected_as_cycle(chain, store):
    a, b, c, *_ = chain
    with pytest.raises(ConflictError) as exc:
        await store.create(c, a, RelationshipType.REFERENCE)
    assert exc.value.reason == ConflictError.CYCLE
    assert exc.value.cycle_path == [str(c), str(a), str(b), str(c)]
    assert len(await store.list_for_content(a)) == 1


async def test_cycle_through_non_parent_edges_is_rejected(make_content, store):
    a = await make_content("A")
    b = await make_content("B")
    await store.create(a, b, RelationshipType.DERIVATIVE)
    with pytest.raises(ConflictError):
        await store.create(b, a, RelationshipType.REACTION)


async def test_self_relationship_is_rejected(make_content, store):
    a = await make_content("A")
    with pytest.raises(ConflictError) as exc:
        await store.create(a, a, RelationshipType.REFERENCE)
    assert exc.value.reason == ConflictError.CYCLE


async def test_non_cycle_edge_succeeds(chain, store):
    a, b, c, *_ = chain
    shortcut = await store.create(a, c, RelationshipType.REFERENCE)
    assert shortcut.path is None


async def test_duplicate_is_rejected(chain, store):
    a, b, *_ = chain
    with pytest.raises(ConflictError) as exc:
        await store.create(a, b, RelationshipType.REFERENCE)
    assert exc.value.reason == ConflictError.DUPLICATE
    assert exc.value.http_status == 409


async def test_second_parent_is_rejected(chain, make_content, store):
    *_, c, _, _ = chain
    d = await make_content("D")
    with pytest.raises(ConflictError) as exc:
        await store.create(d, c, PARENT)
    assert exc.value.reason == ConflictError.MULTIPLE_PARENTS


async def test_unknown_content_is_not_found(make_content, store):
    a = await make_content("A")
    missing = uuid4()
    with pytest.raises(NotFoundError) as exc:
        await store.create(a, missing, PARENT)
    assert exc.value.resource_id == str(missing)


async def test_invalid_input_is_validation_error(make_content, store):
    a = await make_content("A")
    b = await make_content("B")
    with pytest.raises(ValidationError):
        await store.create(a, b, "sibling")
    with pytest.raises(ValidationError):
        await store.create(a, b, PARENT, confidence=1.5)
    with pytest.raises(ValidationError):
        await store.create(a, b, PARENT, creation_method="scraped")
    with pytest.raises(ValidationError):
        await store.create("not-a-uuid", b, PARENT)


async def test_attaching_a_subtree_rebases_descendants(make_content, store):
    a = await make_content("A")
    b = await make_content("B")
    c = await make_content("C")
    bc = await store.create(b, c, PARENT)
    assert bc.path == f"{b.hex}.{c.hex}"

    await store.create(a, b, PARENT)

    assert await store.path_of(c) == f"{a.hex}.{b.hex}.{c.hex}"
    refreshed = await store.get(bc.id)
    assert refreshed.depth == 2


async def test_delete_parent_detaches_subtree_into_new_root(chain, store):
    a, b, c, ab, _ = chain
    assert await store.delete(ab.id) is True

    assert await store.path_of(b) == b.hex
    assert await store.path_of(c) == f"{b.hex}.{c.hex}"
    assert await store.root_of(c) == b
    assert is_valid_path(await store.path_of(c))
    with pytest.raises(NotFoundError):
        await store.get(ab.id)


async def test_unknown_relationship_is_not_found(store):
    missing = uuid4()
    with pytest.raises(NotFoundError):
        await store.delete(missing)
    with pytest.raises(NotFoundError):
        await store.update(missing, {"confidence": 0.5})
    with pytest.raises(NotFoundError):
        await store.confirm(missing)


async def test_update_away_from_parent_detaches(chain, store):
    a, b, c, ab, _ = chain
    updated = await store.update(ab.id, {"relationship_type": "derivative"})
    assert updated.relationship_type == "derivative"
    assert updated.path is None
    assert await store.path_of(c) == f"{b.hex}.{c.hex}"


async def test_update_to_parent_attaches(make_content, store):
    a = await make_content("A")
    b = await make_content("B")
    c = await make_content("C")
    await store.create(b, c, PARENT)
    ref = await store.create(a, b, RelationshipType.REFERENCE)

    updated = await store.update(ref.id, {"relationship_type": "parent"})

    assert updated.path == f"{a.hex}.{b.hex}"
    assert await store.path_of(c) == f"{a.hex}.{b.hex}.{c.hex}"


async def test_update_to_parent_rejects_second_parent(chain, make_content, store):
    *_, c, _, _ = chain
    d = await make_content("D")
    ref = await store.create(d, c, RelationshipType.REFERENCE)
    with pytest.raises(ConflictError) as exc:
        await store.update(ref.id, {"relationship_type": "parent"})
    assert exc.value.reason == ConflictError.MULTIPLE_PARENTS


async def test_reparent_moves_subtree(chain, make_content, store):
    a, b, c, ab, bc = chain
    d = await make_content("D")
    await store.update(ab.id, {"source_content_id": d})
    assert await store.path_of(b) == f"{d.hex}.{b.hex}"
    assert await store.path_of(c) == f"{d.hex}.{b.hex}.{c.hex}"
    assert await store.root_of(c) == d


async def test_reparent_into_own_subtree_is_rejected(chain, store):
    a, b, c, ab, _ = chain
    with pytest.raises(ConflictError) as exc:
        await store.update(ab.id, {"source_content_id": c})
    assert exc.value.reason == ConflictError.CYCLE
    assert await store.path_of(c) == f"{a.hex}.{b.hex}.{c.hex}"


async def test_update_rejects_unknown_fields(chain, store):
    *_, ab, _ = chain
    with pytest.raises(ValidationError):
        await store.update(ab.id, {"path": "hacked"})


async def test_confirm_promotes_to_manual(make_content, store):
    a = await make_content("A")
    b = await make_content("B")
    rel = await store.create(
        a, b, RelationshipType.REPURPOSED,
        confidence=0.8, creation_method=CreationMethod.AI_SUGGESTED,
    )
    confirmed = await store.confirm(rel.id)
    assert confirmed.creation_method == "manual"
    assert confirmed.confidence == 1.0


async def test_mutations_invalidate_suggestion_cache(make_content, store, cache):
    a = await make_content("A")
    b = await make_content("B")
    cache.set(a, ("stale",))
    cache.set(b, ("stale",))
    await store.create(a, b, RelationshipType.REFERENCE)
    assert cache.get(a) is None
    assert cache.get(b) is None


async def test_connected_content_ids_covers_both_directions(chain, store):
    a, b, c, *_ = chain
    assert await store.connected_content_ids(b) == {a, c}


def _store(test_db, **overrides):
    return RelationshipStore(
        test_db, SqlContentRepository(test_db), FamilyLocks(), None, Settings(**overrides),
    )


async def test_parent_chain_cannot_exceed_family_depth(chain, make_content, test_db):
    a, b, c, *_ = chain
    shallow = _store(test_db, family_max_depth=2)
    d = await make_content("D")

    with pytest.raises(ResourceLimitError) as exc:
        await shallow.create(c, d, PARENT)
    assert exc.value.limit_name == "family_max_depth"
    assert await shallow.path_of(d) == d.hex

    # a non-parent edge does not deepen the family
    await shallow.create(c, d, RelationshipType.REFERENCE)


async def test_attaching_deep_subtree_is_rejected(chain, make_content, store, test_db):
    a, b, *_ = chain
    x = await make_content("X")
    y = await make_content("Y")
    z = await make_content("Z")
    xy = await store.create(x, y, PARENT)
    await store.create(y, z, PARENT)
    shallow = _store(test_db, family_max_depth=2)

    # b sits at depth 1: either move pushes z to depth 3 or more
    with pytest.raises(ResourceLimitError):
        await shallow.create(b, x, PARENT)
    with pytest.raises(ResourceLimitError):
        await shallow.update(xy.id, {"source_content_id": b})
    assert await shallow.path_of(z) == f"{x.hex}.{y.hex}.{z.hex}"


@pytest.fixture
async def shared_file_db(tmp_path):
    """Two independent sessions over one file-backed database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'graph.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory
    await engine.dispose()


async def _seed(factory, *titles):
    ids = []
    async with factory() as session:
        for title in titles:
            item = ContentItem(
                id=uuid4(), platform="youtube", content_type="video", title=title,
            )
            session.add(item)
            ids.append(item.id)
        await session.commit()
    return ids


async def test_concurrent_parents_for_one_target_are_serialized(shared_file_db):
    x, y, t = await _seed(shared_file_db, "X", "Y", "T")
    locks = FamilyLocks()

    async with shared_file_db() as first_db, shared_file_db() as second_db:
        first = RelationshipStore(first_db, SqlContentRepository(first_db), locks)
        second = RelationshipStore(second_db, SqlContentRepository(second_db), locks)
        results = await asyncio.gather(
            first.create(x, t, PARENT),
            second.create(y, t, PARENT),
            return_exceptions=True,
        )

    created = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert len(created) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], ConflictError)
    assert failed[0].reason == ConflictError.MULTIPLE_PARENTS

    winner = created[0].source_content_id
    async with shared_file_db() as db:
        check = RelationshipStore(db, SqlContentRepository(db), locks)
        assert await check.root_of(t) == winner
        assert len(await check.list_for_content(t)) == 1


async def test_family_that_keeps_moving_raises_concurrency_error(
    make_content, test_db, monkeypatch,
):
    a = await make_content("A")
    b = await make_content("B")
    store = _store(test_db, family_lock_retries=1)

    async def drifting_root(content_id):
        return uuid4()

    monkeypatch.setattr(store, "root_of", drifting_root)

    with pytest.raises(ConcurrencyError):
        await store.create(a, b, PARENT)
    assert await store.list_for_content(a) == []
