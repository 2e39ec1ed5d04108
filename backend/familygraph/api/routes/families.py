"""Family Routes — family graph, metrics and visualization reads.

Invariants:
    - Read-only: never takes family locks, never writes
    - max_depth bounded by the query validator; the builder applies its own cap too

Design Decisions:
    - Visualization returned as plain JSON: payload shape owned by core/graph_export.py
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from familygraph.api.dependencies import get_graph_service
from familygraph.core.graph_export import SIZE_METRICS
from familygraph.schemas.graph import FamilyMetricsResponse, FamilyResponse
from familygraph.services.content_graph_service import ContentGraphService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/families", tags=["families"])

_SIZE_METRIC_PATTERN = "^(" + "|".join(SIZE_METRICS) + ")$"


@router.get("/{root_id}", response_model=FamilyResponse)
async def get_family(
    root_id: UUID,
    max_depth: int | None = Query(None, ge=0, le=50),
    service: ContentGraphService = Depends(get_graph_service),
):
    family = await service.get_family(root_id, max_depth)
    return FamilyResponse.model_validate(family)


@router.get("/{root_id}/metrics", response_model=FamilyMetricsResponse)
async def get_family_metrics(
    root_id: UUID,
    max_depth: int | None = Query(None, ge=0, le=50),
    service: ContentGraphService = Depends(get_graph_service),
):
    metrics = await service.get_family_metrics(root_id, max_depth)
    return FamilyMetricsResponse.model_validate(metrics)


@router.get("/{root_id}/visualization")
async def get_family_visualization(
    root_id: UUID,
    size_metric: str = Query("views", pattern=_SIZE_METRIC_PATTERN),
    max_depth: int | None = Query(None, ge=0, le=50),
    service: ContentGraphService = Depends(get_graph_service),
):
    return await service.export_family_visualization(root_id, size_metric, max_depth)
