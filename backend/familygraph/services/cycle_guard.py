"""Cycle Guard — loads the reachable edge frontier from the DB and rejects cycle-closing writes.

Invariants:
    - Self-loops (source == target) are rejected as cycles
    - Adjacency is loaded one depth level per query, capped by cycle_max_depth/cycle_max_nodes
    - A cap hit raises ResourceLimitError: an unexplored graph is never declared acyclic
    - All edge types participate (the DAG invariant covers every relationship type)

Design Decisions:
    - Frontier batches over per-node queries: O(depth) round trips instead of O(nodes)
    - Pure decision delegated to core/cycle_search.py; this module only does IO
    - ignore_relationship_id lets update() re-check an edge without seeing its old self
"""

import logging
from collections import defaultdict
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from familygraph.core.cycle_search import would_create_cycle
from familygraph.core.domain_types import ContentId
from familygraph.core.errors import ConflictError, ResourceLimitError
from familygraph.models.content_relationship import ContentRelationship

logger = logging.getLogger(__name__)


class CycleGuard:
    def __init__(self, db: AsyncSession, max_depth: int = 50, max_nodes: int = 5000):
        self.db = db
        self.max_depth = max_depth
        self.max_nodes = max_nodes

    async def check(
        self,
        source_id: ContentId,
        target_id: ContentId,
        ignore_relationship_id: UUID | None = None,
    ) -> None:
        """Raise ConflictError(cycle) if source -> target would close a cycle."""
        if source_id == target_id:
            raise ConflictError(
                "A content item cannot be related to itself",
                ConflictError.CYCLE, source_id, target_id,
                cycle_path=[str(source_id), str(target_id)],
            )

        adjacency = await self._load_reachable(target_id, source_id, ignore_relationship_id)
        cycle = would_create_cycle(
            adjacency, source_id, target_id, self.max_depth, self.max_nodes,
        )
        if cycle:
            logger.info(
                "Rejected cycle-closing relationship",
                extra={"source_id": source_id, "target_id": target_id},
            )
            raise ConflictError(
                "Relationship would create a cycle",
                ConflictError.CYCLE, source_id, target_id,
                cycle_path=[str(c) for c in cycle],
            )

    async def _load_reachable(
        self, start: ContentId, goal: ContentId, ignore_id: UUID | None,
    ) -> dict[ContentId, list[ContentId]]:
        adjacency: dict[ContentId, list[ContentId]] = defaultdict(list)
        seen = {start}
        frontier = [start]
        depth = 0

        while frontier:
            stmt = select(
                ContentRelationship.source_content_id,
                ContentRelationship.target_content_id,
            ).where(ContentRelationship.source_content_id.in_(frontier))
            if ignore_id is not None:
                stmt = stmt.where(ContentRelationship.id != ignore_id)
            rows = (await self.db.execute(stmt)).all()

            next_frontier = []
            for src, dst in rows:
                adjacency[src].append(dst)
                if dst == goal:
                    return adjacency
                if dst not in seen:
                    seen.add(dst)
                    next_frontier.append(dst)
            if next_frontier and depth + 1 > self.max_depth:
                raise ResourceLimitError("cycle_max_depth", self.max_depth, depth + 1)
            if len(seen) > self.max_nodes:
                raise ResourceLimitError("cycle_max_nodes", self.max_nodes, len(seen))
            frontier = next_frontier
            depth += 1

        return adjacency
