"""Family Schemas — Pydantic models for family, metrics and visualization responses.

Invariants:
    - FamilyResponse mirrors core FamilyGraph: every edge connects two listed nodes
    - Audience overlap always carries is_estimate=True and the estimation method
    - Inactive nodes are present with content fields null

Design Decisions:
    - Built from core dataclasses via from_attributes: no hand-written mapping code
    - Visualization payload passed through as a dict: its shape belongs to core/graph_export.py
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from familygraph.core.domain_types import CreationMethod, RelationshipType


class ContentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    platform: str
    content_type: str
    title: str = ""
    url: str | None = None
    published_at: datetime | None = None


class FamilyNodeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    content_id: UUID
    path: str
    depth: int
    parent_id: UUID | None = None
    is_root: bool = False
    active: bool
    content: ContentSummary | None = None


class FamilyEdgeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    source: UUID
    target: UUID
    relationship_type: RelationshipType
    confidence: float
    creation_method: CreationMethod


class FamilyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    root_id: UUID
    depth: int
    nodes: list[FamilyNodeResponse]
    edges: list[FamilyEdgeResponse]
    inactive_ids: list[UUID] = []


class NodeMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    content_id: UUID
    platform: str
    content_type: str
    raw_views: int
    raw_engagements: int
    normalized_views: float
    normalized_engagements: float


class BreakdownResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    content_count: int
    views: float
    engagements: float
    engagement_rate: float
    view_share_pct: float
    engagement_share_pct: float


class PlatformPairResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    platforms: tuple[str, str]
    overlap_pct: float
    estimated_shared_audience: float


class AudienceOverlapResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    platform_audiences: list[tuple[str, float]]
    platform_pairs: list[PlatformPairResponse]
    total_audience: float
    estimated_duplication: float
    estimated_unique_reach: float
    is_estimate: bool = True
    method: str


class FamilyMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    root_id: UUID | None = None
    content_count: int
    active_count: int
    inactive_count: int
    platform_count: int
    total_views: float
    total_engagements: float
    total_shares: int
    total_likes: int
    total_comments: int
    engagement_rate: float
    platform_breakdown: list[BreakdownResponse]
    content_type_breakdown: list[BreakdownResponse]
    audience_overlap: AudienceOverlapResponse
    nodes: list[NodeMetricsResponse]
