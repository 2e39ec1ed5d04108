"""Relationship Schemas — Pydantic models for relationship and suggestion endpoints.

Invariants:
    - relationship_type / creation_method validated against domain enums at the boundary
    - confidence bounded 0.0–1.0
    - RelationshipUpdate is sparse: only fields the client sent reach the store

Design Decisions:
    - Enums from core/domain_types.py reused directly: one vocabulary end to end
    - from_attributes on responses: routes return ORM rows / dataclasses unchanged
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from familygraph.core.domain_types import CreationMethod, RelationshipType


class RelationshipCreate(BaseModel):
    source_content_id: UUID
    target_content_id: UUID
    relationship_type: RelationshipType
    confidence: float | None = Field(None, ge=0.0, le=1.0)
    creation_method: CreationMethod = CreationMethod.MANUAL

    @model_validator(mode="after")
    def distinct_endpoints(self):
        if self.source_content_id == self.target_content_id:
            raise ValueError("source and target must be different content items")
        return self


class RelationshipUpdate(BaseModel):
    """Partial update. Changing source_content_id re-parents the edge."""
    relationship_type: RelationshipType | None = None
    confidence: float | None = Field(None, ge=0.0, le=1.0)
    creation_method: CreationMethod | None = None
    source_content_id: UUID | None = None

    def to_patch(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class RelationshipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    source_content_id: UUID
    target_content_id: UUID
    relationship_type: str
    confidence: float
    creation_method: str
    path: str | None = None
    depth: int | None = None
    created_at: datetime
    updated_at: datetime


class SuggestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    target_id: UUID
    relationship_type: RelationshipType
    confidence: float
    rationale: str
    origin: str
    auto_accepted: bool = False
    relationship_id: UUID | None = None


class SuggestionList(BaseModel):
    content_id: UUID
    threshold: float
    suggestions: list[SuggestionResponse] = []


class SuggestionConfirm(BaseModel):
    """Accept one suggestion for content_id (path parameter)."""
    target_id: UUID
    relationship_type: RelationshipType
