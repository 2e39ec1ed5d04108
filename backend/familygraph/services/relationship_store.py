"""Relationship Store — CRUD over relationship edges and owner of the hierarchical path index.

Invariants:
    - Every write validates type/method/confidence, content existence, duplicates,
      single PARENT per target and acyclicity BEFORE anything is persisted
    - Path recomputation for a node and all its descendants happens in the same
      commit as the edge change (one unit of work, rolled back as a whole)
    - Deleting a PARENT edge turns the former target into a new family root;
      content nodes are never deleted
    - No PARENT write may place any node deeper than family_max_depth below its
      family root (ResourceLimitError); a full family is therefore always retrievable
    - Mutations hold the family locks of every root they touch (FamilyLocks, plus
      pg_advisory_xact_lock on PostgreSQL); reads take no locks
    - Unknown relationship id -> NotFoundError; SQLAlchemy failures -> StorageError (chained)
    - Suggestion cache entries of both endpoints are invalidated after every mutation

Design Decisions:
    - path/depth live on the PARENT row pointing at a node: "no PARENT row" == root,
      so no separate node table is needed
    - Subtree rebase selects descendants with one LIKE '<old>.%' scan and rewrites
      prefixes in Python: portable across sqlite/postgres string functions
    - Roots are re-resolved after the locks are taken; a concurrent re-parent
      that moved a node to another family triggers a bounded retry
"""

import logging
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy import func, select, or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from familygraph.config import Settings, get_settings
from familygraph.core import hierarchy_paths
from familygraph.core.domain_types import (
    ContentId, RelationshipType, CreationMethod, MANUAL_CONFIDENCE,
    parse_relationship_type, parse_creation_method,
)
from familygraph.core.errors import (
    ContentGraphError, ValidationError, NotFoundError, ConflictError,
    ConcurrencyError, ResourceLimitError, StorageError,
)
from familygraph.core.repository_protocols import ContentRepository
from familygraph.infrastructure.family_locks import FamilyLocks
from familygraph.infrastructure.ttl_cache import TTLCache
from familygraph.models.content_relationship import ContentRelationship
from familygraph.services.cycle_guard import CycleGuard

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = frozenset({
    "relationship_type", "confidence", "creation_method", "source_content_id",
})

_PARENT = RelationshipType.PARENT.value


class RelationshipStore:
    """Owns content_relationships rows: edges, paths and depths."""

    def __init__(
        self,
        db: AsyncSession,
        content_repo: ContentRepository,
        locks: FamilyLocks,
        cache: TTLCache | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.db = db
        self.content_repo = content_repo
        self.locks = locks
        self.cache = cache
        self.lock_retries = settings.family_lock_retries
        self.max_depth = settings.family_max_depth
        self.cycle_guard = CycleGuard(
            db, settings.cycle_max_depth, settings.cycle_max_nodes,
        )

    # ─── Reads ───────────────────────────────────────────────────

    async def get(self, relationship_id: UUID) -> ContentRelationship:
        rel = await self.db.get(ContentRelationship, relationship_id)
        if rel is None:
            raise NotFoundError("Relationship", relationship_id)
        return rel

    async def list_for_content(self, content_id: ContentId) -> list[ContentRelationship]:
        """Every edge touching content_id, in either direction."""
        result = await self.db.execute(
            select(ContentRelationship)
            .where(or_(
                ContentRelationship.source_content_id == content_id,
                ContentRelationship.target_content_id == content_id,
            ))
            .order_by(ContentRelationship.created_at)
        )
        return list(result.scalars().all())

    async def connected_content_ids(self, content_id: ContentId) -> set[ContentId]:
        result = await self.db.execute(
            select(
                ContentRelationship.source_content_id,
                ContentRelationship.target_content_id,
            ).where(or_(
                ContentRelationship.source_content_id == content_id,
                ContentRelationship.target_content_id == content_id,
            ))
        )
        connected = set()
        for source, target in result.all():
            connected.add(target if source == content_id else source)
        return connected

    async def path_of(self, content_id: ContentId) -> str:
        """Hierarchical path of a node; a root's path is its own label."""
        row = await self._parent_row(content_id)
        if row is not None and row.path:
            return row.path
        return hierarchy_paths.root_path(content_id)

    async def root_of(self, content_id: ContentId) -> ContentId:
        return hierarchy_paths.root_of(await self.path_of(content_id))

    # ─── Mutations ───────────────────────────────────────────────

    async def create(
        self,
        source_content_id: UUID | str,
        target_content_id: UUID | str,
        relationship_type: RelationshipType | str,
        confidence: float | None = None,
        creation_method: CreationMethod | str = CreationMethod.MANUAL,
    ) -> ContentRelationship:
        """Validate and persist a new edge, recomputing paths for PARENT edges."""
        source_id = _as_content_id(source_content_id, "source_content_id")
        target_id = _as_content_id(target_content_id, "target_content_id")
        rel_type = _parse_type(relationship_type)
        method = _parse_method(creation_method)
        confidence = _check_confidence(
            MANUAL_CONFIDENCE if confidence is None else confidence,
        )
        await self._require_content(source_id, target_id)

        async with self._family_guard(source_id, target_id):
            async with self._unit_of_work("create", source_id, target_id):
                await self._reject_duplicate(source_id, target_id)
                if rel_type is RelationshipType.PARENT:
                    await self._reject_second_parent(source_id, target_id)
                await self.cycle_guard.check(source_id, target_id)

                rel = ContentRelationship(
                    source_content_id=source_id,
                    target_content_id=target_id,
                    relationship_type=rel_type.value,
                    confidence=confidence,
                    creation_method=method.value,
                )
                if rel_type is RelationshipType.PARENT:
                    # Target was a root until now: its subtree hangs off its own label
                    new_path = hierarchy_paths.child_path(
                        await self.path_of(source_id), target_id,
                    )
                    await self._check_subtree_depth(
                        hierarchy_paths.root_path(target_id), new_path,
                    )
                    await self._rebase_subtree(
                        hierarchy_paths.root_path(target_id), new_path,
                    )
                    _set_path(rel, new_path)
                self.db.add(rel)

        await self.db.refresh(rel)
        self._invalidate(source_id, target_id)
        logger.info(
            "Relationship created",
            extra={
                "relationship_id": rel.id, "source_id": source_id,
                "target_id": target_id, "relationship_type": rel.relationship_type,
            },
        )
        return rel

    async def update(self, relationship_id: UUID, patch: dict) -> ContentRelationship:
        """Apply a partial update; type or source changes re-run validation and paths."""
        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Unknown relationship fields: {sorted(unknown)}", sorted(unknown)[0],
            )
        rel = await self.get(relationship_id)
        old_source = rel.source_content_id
        new_source = old_source
        if patch.get("source_content_id") is not None:
            new_source = _as_content_id(patch["source_content_id"], "source_content_id")
        new_type = RelationshipType(rel.relationship_type)
        if patch.get("relationship_type") is not None:
            new_type = _parse_type(patch["relationship_type"])
        method = None
        if patch.get("creation_method") is not None:
            method = _parse_method(patch["creation_method"])
        confidence = None
        if patch.get("confidence") is not None:
            confidence = _check_confidence(patch["confidence"])
        if new_source != old_source:
            await self._require_content(new_source)

        target_id = rel.target_content_id
        async with self._family_guard(old_source, new_source, target_id):
            async with self._unit_of_work("update", new_source, target_id):
                rel = await self.get(relationship_id)
                await self._apply_structure_change(rel, new_source, new_type)
                if method is not None:
                    rel.creation_method = method.value
                if confidence is not None:
                    rel.confidence = confidence

        await self.db.refresh(rel)
        self._invalidate(old_source, new_source, target_id)
        logger.info(
            "Relationship updated",
            extra={
                "relationship_id": rel.id, "source_id": rel.source_content_id,
                "target_id": target_id, "relationship_type": rel.relationship_type,
            },
        )
        return rel

    async def delete(self, relationship_id: UUID) -> bool:
        """Remove an edge. A PARENT target becomes the root of its own family."""
        rel = await self.get(relationship_id)
        source_id, target_id = rel.source_content_id, rel.target_content_id

        async with self._family_guard(source_id, target_id):
            async with self._unit_of_work("delete", source_id, target_id):
                rel = await self.get(relationship_id)
                if rel.relationship_type == _PARENT:
                    old_path = rel.path or hierarchy_paths.child_path(
                        await self.path_of(source_id), target_id,
                    )
                    moved = await self._rebase_subtree(
                        old_path, hierarchy_paths.root_path(target_id),
                    )
                    logger.info(
                        "Subtree detached into new family",
                        extra={"root_id": target_id, "node_count": moved + 1},
                    )
                await self.db.delete(rel)

        self._invalidate(source_id, target_id)
        logger.info(
            "Relationship deleted",
            extra={
                "relationship_id": relationship_id,
                "source_id": source_id, "target_id": target_id,
            },
        )
        return True

    async def confirm(self, relationship_id: UUID) -> ContentRelationship:
        """Promote a suggested or detected edge to MANUAL with full confidence."""
        rel = await self.get(relationship_id)
        async with self._unit_of_work(
            "confirm", rel.source_content_id, rel.target_content_id,
        ):
            rel.creation_method = CreationMethod.MANUAL.value
            rel.confidence = MANUAL_CONFIDENCE
        await self.db.refresh(rel)
        self._invalidate(rel.source_content_id, rel.target_content_id)
        logger.info("Relationship confirmed", extra={"relationship_id": rel.id})
        return rel

    # ─── Structure helpers ───────────────────────────────────────

    async def _apply_structure_change(
        self,
        rel: ContentRelationship,
        new_source: ContentId,
        new_type: RelationshipType,
    ) -> None:
        target_id = rel.target_content_id
        was_parent = rel.relationship_type == _PARENT
        is_parent = new_type is RelationshipType.PARENT
        source_changed = new_source != rel.source_content_id

        if source_changed:
            await self._reject_duplicate(new_source, target_id)
        if is_parent and not was_parent:
            await self._reject_second_parent(new_source, target_id)
        if source_changed or (is_parent and not was_parent):
            await self.cycle_guard.check(
                new_source, target_id, ignore_relationship_id=rel.id,
            )

        if was_parent or is_parent:
            old_path = rel.path if was_parent and rel.path else (
                hierarchy_paths.root_path(target_id)
            )
            if is_parent:
                new_path = hierarchy_paths.child_path(
                    await self.path_of(new_source), target_id,
                )
            else:
                new_path = hierarchy_paths.root_path(target_id)
            if new_path != old_path:
                if is_parent:
                    await self._check_subtree_depth(old_path, new_path)
                await self._rebase_subtree(old_path, new_path)
            if is_parent:
                _set_path(rel, new_path)
            else:
                rel.path = None
                rel.depth = None

        rel.source_content_id = new_source
        rel.relationship_type = new_type.value

    async def _check_subtree_depth(self, old_path: str, new_path: str) -> None:
        """Reject a move that would put the subtree's deepest node past the cap."""
        result = await self.db.execute(
            select(func.max(ContentRelationship.depth)).where(
                ContentRelationship.path.like(hierarchy_paths.descendant_pattern(old_path))
            )
        )
        old_depth = hierarchy_paths.depth_of(old_path)
        deepest = result.scalar_one_or_none()
        below = (deepest - old_depth) if deepest is not None else 0
        new_deepest = hierarchy_paths.depth_of(new_path) + below
        if new_deepest > self.max_depth:
            raise ResourceLimitError("family_max_depth", self.max_depth, new_deepest)

    async def _rebase_subtree(self, old_path: str, new_path: str) -> int:
        """Rewrite every strict descendant of old_path to hang under new_path."""
        result = await self.db.execute(
            select(ContentRelationship).where(
                ContentRelationship.path.like(hierarchy_paths.descendant_pattern(old_path))
            )
        )
        rows = result.scalars().all()
        for row in rows:
            _set_path(row, hierarchy_paths.rebase(row.path, old_path, new_path))
        return len(rows)

    async def _parent_row(
        self, content_id: ContentId, exclude_id: UUID | None = None,
    ) -> ContentRelationship | None:
        stmt = select(ContentRelationship).where(
            ContentRelationship.target_content_id == content_id,
            ContentRelationship.relationship_type == _PARENT,
        )
        if exclude_id is not None:
            stmt = stmt.where(ContentRelationship.id != exclude_id)
        result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    # ─── Validation ──────────────────────────────────────────────

    async def _require_content(self, *content_ids: ContentId) -> None:
        found = {node.id for node in await self.content_repo.list_by_ids(list(content_ids))}
        for content_id in content_ids:
            if content_id not in found:
                raise NotFoundError("Content", content_id)

    async def _reject_duplicate(self, source_id: ContentId, target_id: ContentId) -> None:
        result = await self.db.execute(
            select(ContentRelationship.id).where(
                ContentRelationship.source_content_id == source_id,
                ContentRelationship.target_content_id == target_id,
            )
        )
        if result.first() is not None:
            raise ConflictError(
                "Relationship already exists", ConflictError.DUPLICATE,
                source_id, target_id,
            )

    async def _reject_second_parent(
        self, source_id: ContentId, target_id: ContentId,
    ) -> None:
        existing = await self._parent_row(target_id)
        if existing is not None:
            raise ConflictError(
                f"Content '{target_id}' already has a parent "
                f"('{existing.source_content_id}')",
                ConflictError.MULTIPLE_PARENTS, source_id, target_id,
            )

    # ─── Concurrency & transactions ──────────────────────────────

    @asynccontextmanager
    async def _family_guard(self, *content_ids: ContentId):
        """Hold the locks of every family the given nodes belong to."""
        for attempt in range(self.lock_retries):
            roots = {await self.root_of(cid) for cid in content_ids}
            async with self.locks.hold(roots):
                await self._advisory_lock(roots)
                current = {await self.root_of(cid) for cid in content_ids}
                if current != roots:
                    logger.warning(
                        "Family moved while acquiring locks, retrying",
                        extra={"attempt": attempt + 1},
                    )
                    await self.db.rollback()
                    continue
                yield roots
                return
        raise ConcurrencyError(
            f"Could not lock families of {[str(c) for c in content_ids]} "
            f"after {self.lock_retries} attempts",
        )

    async def _advisory_lock(self, roots: set[ContentId]) -> None:
        if self.db.get_bind().dialect.name != "postgresql":
            return
        for root in sorted(roots, key=str):
            await self.db.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": _advisory_key(root)},
            )

    @asynccontextmanager
    async def _unit_of_work(self, operation: str, source_id, target_id):
        """Commit on success; roll back and map errors otherwise."""
        try:
            yield
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(
                "Relationship already exists", ConflictError.DUPLICATE,
                source_id, target_id,
            ) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Relationship {operation} failed: {e}",
                extra={"operation": operation, "source_id": source_id, "target_id": target_id},
            )
            raise StorageError(str(e), operation) from e
        except ContentGraphError:
            await self.db.rollback()
            raise

    def _invalidate(self, *content_ids: ContentId) -> None:
        if self.cache is None:
            return
        for content_id in set(content_ids):
            self.cache.invalidate(content_id)


# ─── Module helpers ──────────────────────────────────────────────

def _set_path(rel: ContentRelationship, path: str) -> None:
    rel.path = path
    rel.depth = hierarchy_paths.depth_of(path)


def _as_content_id(value: UUID | str, field: str) -> ContentId:
    if isinstance(value, UUID):
        return ContentId(value)
    try:
        return ContentId(UUID(str(value)))
    except ValueError as e:
        raise ValidationError(f"Invalid {field}: {value!r}", field) from e


def _parse_type(value: RelationshipType | str) -> RelationshipType:
    rel_type = parse_relationship_type(value.value if isinstance(value, RelationshipType) else value)
    if rel_type is None:
        raise ValidationError(f"Unknown relationship type: {value!r}", "relationship_type")
    return rel_type


def _parse_method(value: CreationMethod | str) -> CreationMethod:
    method = parse_creation_method(value.value if isinstance(value, CreationMethod) else value)
    if method is None:
        raise ValidationError(f"Unknown creation method: {value!r}", "creation_method")
    return method


def _check_confidence(value: float) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Confidence must be a number: {value!r}", "confidence") from e
    if not 0.0 <= confidence <= 1.0:
        raise ValidationError(f"Confidence must be within [0, 1]: {confidence}", "confidence")
    return confidence


def _advisory_key(root: ContentId) -> int:
    """Signed 64-bit key derived from the root UUID."""
    return int.from_bytes(root.bytes[:8], "big", signed=True)
