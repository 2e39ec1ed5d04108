"""Family Graph — value types for a retrieved content family (nodes + edges).

Invariants:
    - Every edge in FamilyGraph.edges connects two nodes in FamilyGraph.nodes
    - Node ids are unique; exactly one node has is_root=True
    - Inactive nodes (content removed upstream) keep their position: content is None

Design Decisions:
    - Frozen dataclasses: a built family is a snapshot, consumers (metrics, export) never mutate it
    - Edge carries the relationship's own id so visualizations can deep-link to it
"""

from dataclasses import dataclass, field
from datetime import datetime

from familygraph.core.domain_types import (
    ContentId, ContentNode, RelationshipId, RelationshipType, CreationMethod,
)


@dataclass(frozen=True)
class FamilyNode:
    """A node of a built family with its position in the PARENT hierarchy."""
    content_id: ContentId
    path: str
    depth: int
    parent_id: ContentId | None
    content: ContentNode | None
    is_root: bool = False

    @property
    def active(self) -> bool:
        return self.content is not None


@dataclass(frozen=True)
class FamilyEdge:
    id: RelationshipId
    source: ContentId
    target: ContentId
    relationship_type: RelationshipType
    confidence: float
    creation_method: CreationMethod


@dataclass(frozen=True)
class FamilyGraph:
    """A content family rooted at root_id, as returned by GraphBuilder."""
    root_id: ContentId
    nodes: tuple[FamilyNode, ...]
    edges: tuple[FamilyEdge, ...]
    max_depth: int | None = None
    built_at: datetime | None = field(default=None, compare=False)

    @property
    def node_ids(self) -> set[ContentId]:
        return {n.content_id for n in self.nodes}

    @property
    def inactive_ids(self) -> list[ContentId]:
        return [n.content_id for n in self.nodes if not n.active]

    @property
    def depth(self) -> int:
        return max((n.depth for n in self.nodes), default=0)

    def active_contents(self) -> list[ContentNode]:
        return [n.content for n in self.nodes if n.content is not None]
