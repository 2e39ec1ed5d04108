"""Content Graph Service — the operations controllers call; wires store, builder, suggester.

Invariants:
    - One instance per unit of work (per request): it shares the caller's AsyncSession
    - Cache and family locks are process-wide and passed in, never created per request
      in production (a per-request FamilyLocks would lock nothing)
    - Metrics and exports are computed from a freshly built family, never persisted

Design Decisions:
    - Facade over exposing the collaborators: routes depend on one object
    - Settings weighting tables resolved here: core aggregation stays config-free
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from familygraph.config import Settings, get_settings
from familygraph.core.domain_types import ContentId, CreationMethod, RelationshipType
from familygraph.core.errors import ValidationError
from familygraph.core.family_graph import FamilyGraph
from familygraph.core.family_metrics import FamilyMetrics, aggregate
from familygraph.core.graph_export import export_family
from familygraph.core.repository_protocols import ContentRepository, RelationshipClassifier
from familygraph.infrastructure.content_repository import SqlContentRepository
from familygraph.infrastructure.family_locks import FamilyLocks
from familygraph.infrastructure.ttl_cache import TTLCache
from familygraph.models.content_relationship import ContentRelationship
from familygraph.services.graph_builder import GraphBuilder
from familygraph.services.relationship_store import RelationshipStore
from familygraph.services.relationship_suggester import (
    AutoAcceptPolicy, RelationshipSuggester, Suggestion,
)

logger = logging.getLogger(__name__)


class ContentGraphService:
    def __init__(
        self,
        db: AsyncSession,
        locks: FamilyLocks,
        cache: TTLCache | None = None,
        classifier: RelationshipClassifier | None = None,
        content_repo: ContentRepository | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        content_repo = content_repo or SqlContentRepository(db)
        self.store = RelationshipStore(db, content_repo, locks, cache, self.settings)
        self.builder = GraphBuilder(db, self.store, content_repo, self.settings)
        self.suggester = RelationshipSuggester(
            self.store, content_repo, classifier, cache, self.settings,
        )

    # ─── Relationships ───────────────────────────────────────────

    async def create_relationship(
        self,
        source_content_id: UUID | str,
        target_content_id: UUID | str,
        relationship_type: RelationshipType | str,
        confidence: float | None = None,
        creation_method: CreationMethod | str = CreationMethod.MANUAL,
    ) -> ContentRelationship:
        return await self.store.create(
            source_content_id, target_content_id, relationship_type,
            confidence=confidence, creation_method=creation_method,
        )

    async def update_relationship(
        self, relationship_id: UUID, patch: dict,
    ) -> ContentRelationship:
        return await self.store.update(relationship_id, patch)

    async def delete_relationship(self, relationship_id: UUID) -> bool:
        return await self.store.delete(relationship_id)

    async def get_relationship(self, relationship_id: UUID) -> ContentRelationship:
        return await self.store.get(relationship_id)

    async def confirm_relationship(self, relationship_id: UUID) -> ContentRelationship:
        return await self.store.confirm(relationship_id)

    async def confirm_suggestion(
        self, content_id: ContentId, suggestion: Suggestion,
    ) -> ContentRelationship:
        """Accept a suggestion: promote an existing suggested edge, or create it as MANUAL."""
        result = await self.db.execute(
            select(ContentRelationship).where(
                ContentRelationship.source_content_id == content_id,
                ContentRelationship.target_content_id == suggestion.target_id,
            )
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            return await self.store.confirm(existing.id)
        return await self.store.create(
            content_id, suggestion.target_id, suggestion.relationship_type,
            creation_method=CreationMethod.MANUAL,
        )

    # ─── Families ────────────────────────────────────────────────

    async def get_family(
        self, root_id: ContentId, max_depth: int | None = None,
    ) -> FamilyGraph:
        return await self.builder.build_family(root_id, max_depth)

    async def get_family_metrics(
        self, root_id: ContentId, max_depth: int | None = None,
    ) -> FamilyMetrics:
        family = await self.builder.build_family(root_id, max_depth)
        return aggregate(
            family.nodes,
            standardization=self.settings.standardization_table(),
            overlap=self.settings.overlap_table(),
            root_id=root_id,
        )

    async def export_family_visualization(
        self,
        root_id: ContentId,
        size_metric: str = "views",
        max_depth: int | None = None,
    ) -> dict:
        family = await self.builder.build_family(root_id, max_depth)
        try:
            return export_family(family, size_metric=size_metric)
        except ValueError as e:
            raise ValidationError(str(e), "size_metric") from e

    # ─── Suggestions ─────────────────────────────────────────────

    async def find_suggestions(
        self,
        content_id: ContentId,
        threshold: float | None = None,
        auto_accept: AutoAcceptPolicy | None = None,
    ) -> list[Suggestion]:
        return await self.suggester.find_candidates(content_id, threshold, auto_accept)
