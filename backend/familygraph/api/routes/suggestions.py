"""Suggestion Routes — relationship suggestions for a content item and their confirmation.

Invariants:
    - GET never writes unless auto_accept is passed (and clears the configured floor)
    - Confirming a suggestion creates (or promotes) a MANUAL edge through the store

Design Decisions:
    - Threshold is a query parameter: one cached scoring pass serves every threshold
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from familygraph.api.dependencies import get_graph_service
from familygraph.schemas.relationships import (
    RelationshipResponse, SuggestionConfirm, SuggestionList, SuggestionResponse,
)
from familygraph.services.content_graph_service import ContentGraphService
from familygraph.services.relationship_suggester import (
    AutoAcceptPolicy, Suggestion, SuggestionOrigin,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/content", tags=["suggestions"])


@router.get("/{content_id}/suggestions", response_model=SuggestionList)
async def get_suggestions(
    content_id: UUID,
    threshold: float | None = Query(None, ge=0.0, le=1.0),
    auto_accept: float | None = Query(None, ge=0.0, le=1.0),
    service: ContentGraphService = Depends(get_graph_service),
):
    policy = AutoAcceptPolicy(auto_accept) if auto_accept is not None else None
    suggestions = await service.find_suggestions(content_id, threshold, policy)
    return SuggestionList(
        content_id=content_id,
        threshold=service.settings.suggestion_threshold if threshold is None else threshold,
        suggestions=[SuggestionResponse.model_validate(s) for s in suggestions],
    )


@router.post(
    "/{content_id}/suggestions/confirm",
    response_model=RelationshipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def confirm_suggestion(
    content_id: UUID,
    body: SuggestionConfirm,
    service: ContentGraphService = Depends(get_graph_service),
):
    suggestion = Suggestion(
        target_id=body.target_id,
        relationship_type=body.relationship_type,
        confidence=1.0,
        rationale="confirmed by user",
        origin=SuggestionOrigin.AI,
    )
    return await service.confirm_suggestion(content_id, suggestion)
