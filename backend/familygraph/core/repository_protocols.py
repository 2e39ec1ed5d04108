"""Boundary Protocols — contracts between the graph core and its external collaborators.

Invariants:
    - Core NEVER imports from services/, infrastructure/ or db/ — dependency arrows point inward
    - Content repository is read-only from this side
    - AI classifier results are typed (core/ai_results.py), never raw dicts

Design Decisions:
    - Protocol over ABC: structural subtyping, tests pass plain fakes
    - Async in Protocol: implementations do IO; the pure core functions that consume their
      results are never async themselves
"""

from collections.abc import Sequence
from typing import Protocol

from familygraph.core.ai_results import AIResult
from familygraph.core.domain_types import ContentId, ContentNode


class ContentRepository(Protocol):
    """External content store (owned by the content service)."""
    async def find_by_id(self, content_id: ContentId) -> ContentNode | None: ...
    async def list_by_ids(self, content_ids: Sequence[ContentId]) -> list[ContentNode]: ...
    async def list_candidates(
        self, source: ContentNode, limit: int,
    ) -> list[ContentNode]: ...


class RelationshipClassifier(Protocol):
    """External AI collaborator that judges one (source, candidate) pair."""
    async def classify_relationship(
        self, source: ContentNode, target: ContentNode, options: dict | None = None,
    ) -> AIResult: ...
