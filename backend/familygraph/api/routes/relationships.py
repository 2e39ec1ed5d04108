"""Relationship Routes — create, update, delete and confirm content relationships.

Invariants:
    - Domain errors propagate to the global handler (no try/except here)
    - Responses are RelationshipResponse built from the ORM row

Design Decisions:
    - DELETE returns 204: deleting never deletes content, only the edge
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from familygraph.api.dependencies import get_graph_service
from familygraph.schemas.relationships import (
    RelationshipCreate, RelationshipResponse, RelationshipUpdate,
)
from familygraph.services.content_graph_service import ContentGraphService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/relationships", tags=["relationships"])


@router.post(
    "", response_model=RelationshipResponse, status_code=status.HTTP_201_CREATED,
)
async def create_relationship(
    body: RelationshipCreate,
    service: ContentGraphService = Depends(get_graph_service),
):
    return await service.create_relationship(
        body.source_content_id,
        body.target_content_id,
        body.relationship_type,
        confidence=body.confidence,
        creation_method=body.creation_method,
    )


@router.get("/{relationship_id}", response_model=RelationshipResponse)
async def get_relationship(
    relationship_id: UUID,
    service: ContentGraphService = Depends(get_graph_service),
):
    return await service.get_relationship(relationship_id)


@router.patch("/{relationship_id}", response_model=RelationshipResponse)
async def update_relationship(
    relationship_id: UUID,
    body: RelationshipUpdate,
    service: ContentGraphService = Depends(get_graph_service),
):
    return await service.update_relationship(relationship_id, body.to_patch())


@router.delete("/{relationship_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_relationship(
    relationship_id: UUID,
    service: ContentGraphService = Depends(get_graph_service),
):
    await service.delete_relationship(relationship_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{relationship_id}/confirm", response_model=RelationshipResponse)
async def confirm_relationship(
    relationship_id: UUID,
    service: ContentGraphService = Depends(get_graph_service),
):
    """Promote a suggested or detected edge to MANUAL."""
    return await service.confirm_relationship(relationship_id)
