"""Route Dependencies — process-wide graph runtime and per-request ContentGraphService.

Invariants:
    - One FamilyLocks and one suggestion TTLCache per process, shared by every request
    - The AI classifier is built once from settings on startup (None disables AI scoring)
    - ContentGraphService is created per request around the request's AsyncSession

Design Decisions:
    - Module-level runtime initialized in lifespan: same pattern as db_manager
    - Lazy fallback when lifespan did not run (tests with ASGITransport): locks and cache
      are still shared, the classifier stays disabled
"""

import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from familygraph.config import Settings, get_settings
from familygraph.core.repository_protocols import RelationshipClassifier
from familygraph.infrastructure.anthropic_client import ResilientAnthropicClient
from familygraph.infrastructure.database import get_db
from familygraph.infrastructure.family_locks import FamilyLocks
from familygraph.infrastructure.ttl_cache import TTLCache
from familygraph.services.content_graph_service import ContentGraphService
from familygraph.services.relationship_classifier import AnthropicRelationshipClassifier

logger = logging.getLogger(__name__)

family_locks = FamilyLocks()
suggestion_cache: TTLCache | None = None
classifier: RelationshipClassifier | None = None


def init_graph_runtime(settings: Settings, enable_ai: bool = True) -> None:
    """Build the shared cache and classifier (called from lifespan)."""
    global suggestion_cache, classifier
    suggestion_cache = TTLCache(settings.suggestion_cache_ttl_seconds)
    if not enable_ai:
        classifier = None
        return
    client = ResilientAnthropicClient(
        api_key=settings.anthropic_api_key,
        max_retries=settings.anthropic_max_retries,
        base_delay_ms=settings.anthropic_base_delay_ms,
        max_delay_ms=settings.anthropic_max_delay_ms,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )
    classifier = AnthropicRelationshipClassifier(
        client, settings.classifier_model, settings.classifier_max_tokens,
    )
    logger.info("Relationship classifier enabled", extra={"operation": settings.classifier_model})


def get_graph_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ContentGraphService:
    global suggestion_cache
    if suggestion_cache is None:
        suggestion_cache = TTLCache(settings.suggestion_cache_ttl_seconds)
    return ContentGraphService(
        db,
        locks=family_locks,
        cache=suggestion_cache,
        classifier=classifier,
        settings=settings,
    )
