"""Graph Builder — retrieves a whole content family from its root with one path-index range scan.

Invariants:
    - Nodes = the requested root + every node whose PARENT path extends the root's path
    - Edges = exactly the relationships (any type) whose both endpoints are in the node set
    - No duplicate nodes; node depth is relative to the requested root
    - Nodes whose content vanished from the repository are returned inactive, never dropped
    - More than family_max_nodes descendants -> ResourceLimitError (fails fast, never hangs)
    - Without an explicit max_depth the family is complete or the call fails:
      a descendant deeper than family_max_depth raises ResourceLimitError
    - Lock-free: reads only, read-committed staleness accepted

Design Decisions:
    - Any node may be used as "root": its subtree is a family too (e.g. a clip's remixes)
    - Descendant fetch limited to max_nodes + 1 rows: the overflow row proves the cap was hit
      without loading the whole oversized family
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from familygraph.config import Settings, get_settings
from familygraph.core import hierarchy_paths
from familygraph.core.domain_types import (
    ContentId, RelationshipId, RelationshipType, CreationMethod,
)
from familygraph.core.errors import NotFoundError, ResourceLimitError, ValidationError
from familygraph.core.family_graph import FamilyEdge, FamilyGraph, FamilyNode
from familygraph.core.repository_protocols import ContentRepository
from familygraph.models.content_relationship import ContentRelationship
from familygraph.services.relationship_store import RelationshipStore

logger = logging.getLogger(__name__)


class GraphBuilder:
    def __init__(
        self,
        db: AsyncSession,
        store: RelationshipStore,
        content_repo: ContentRepository,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.db = db
        self.store = store
        self.content_repo = content_repo
        self.max_nodes = settings.family_max_nodes
        self.max_depth = settings.family_max_depth

    async def build_family(
        self, root_id: ContentId, max_depth: int | None = None,
    ) -> FamilyGraph:
        """Build the family rooted at root_id, optionally truncated at max_depth levels."""
        if max_depth is not None and max_depth < 0:
            raise ValidationError("max_depth must be >= 0", "max_depth")
        depth_cap = self.max_depth if max_depth is None else min(max_depth, self.max_depth)

        root_path = await self.store.path_of(root_id)
        root_depth = hierarchy_paths.depth_of(root_path)
        if max_depth is None:
            await self._reject_too_deep(root_path, root_depth)

        stmt = (
            select(ContentRelationship)
            .where(
                ContentRelationship.relationship_type == RelationshipType.PARENT.value,
                ContentRelationship.path.like(hierarchy_paths.descendant_pattern(root_path)),
                ContentRelationship.depth <= root_depth + depth_cap,
            )
            .order_by(ContentRelationship.depth, ContentRelationship.path)
            .limit(self.max_nodes + 1)
        )
        parent_rows = (await self.db.execute(stmt)).scalars().all()
        if len(parent_rows) + 1 > self.max_nodes:
            raise ResourceLimitError(
                "family_max_nodes", self.max_nodes, len(parent_rows) + 1,
            )

        node_ids = [root_id] + [row.target_content_id for row in parent_rows]
        contents = {
            node.id: node for node in await self.content_repo.list_by_ids(node_ids)
        }
        if root_id not in contents and not parent_rows:
            raise NotFoundError("Content", root_id)

        nodes = [FamilyNode(
            content_id=root_id,
            path=root_path,
            depth=0,
            parent_id=None,
            content=contents.get(root_id),
            is_root=True,
        )]
        for row in parent_rows:
            nodes.append(FamilyNode(
                content_id=row.target_content_id,
                path=row.path,
                depth=row.depth - root_depth,
                parent_id=row.source_content_id,
                content=contents.get(row.target_content_id),
            ))

        edges = await self._edges_within(set(node_ids))
        family = FamilyGraph(
            root_id=root_id,
            nodes=tuple(nodes),
            edges=tuple(edges),
            max_depth=max_depth,
            built_at=datetime.now(timezone.utc),
        )
        logger.info(
            "Family built",
            extra={
                "root_id": root_id,
                "node_count": len(nodes),
                "edge_count": len(edges),
            },
        )
        return family

    async def _reject_too_deep(self, root_path: str, root_depth: int) -> None:
        """Fail when any descendant lies below the depth a full family may span."""
        result = await self.db.execute(
            select(ContentRelationship.depth)
            .where(
                ContentRelationship.relationship_type == RelationshipType.PARENT.value,
                ContentRelationship.path.like(hierarchy_paths.descendant_pattern(root_path)),
                ContentRelationship.depth > root_depth + self.max_depth,
            )
            .order_by(ContentRelationship.depth.desc())
            .limit(1)
        )
        deepest = result.scalar_one_or_none()
        if deepest is not None:
            raise ResourceLimitError(
                "family_max_depth", self.max_depth, deepest - root_depth,
            )

    async def _edges_within(self, node_ids: set[ContentId]) -> list[FamilyEdge]:
        if not node_ids:
            return []
        result = await self.db.execute(
            select(ContentRelationship)
            .where(ContentRelationship.source_content_id.in_(node_ids))
            .order_by(ContentRelationship.created_at, ContentRelationship.id)
        )
        return [
            FamilyEdge(
                id=RelationshipId(row.id),
                source=row.source_content_id,
                target=row.target_content_id,
                relationship_type=RelationshipType(row.relationship_type),
                confidence=row.confidence,
                creation_method=CreationMethod(row.creation_method),
            )
            for row in result.scalars().all()
            if row.target_content_id in node_ids
        ]
