"""Relationship Suggester — ranks candidate relationships for a content item.

Invariants:
    - Never suggests the item itself or an item already connected to it by any edge
    - Never returns a suggestion below the requested confidence threshold
    - AI failures (timeout, API error, unparseable answer) degrade to heuristic scores
      and are logged at WARNING — find_candidates never raises because of the AI
    - Suggestions are advisory: nothing is written unless the caller passes an
      AutoAcceptPolicy whose threshold is at least suggestion_auto_accept_floor
    - Scored lists are cached per content id (TTL); the store invalidates on mutation

Design Decisions:
    - Heuristic prefilter before the AI call: only plausible candidates cost a request
    - AI confidence replaces the heuristic when available (the model sees more signal);
      a platform linkage hint can only raise confidence, never lower it
    - Cache holds the unfiltered list: different thresholds reuse one scoring pass
    - Semaphore bounds concurrent AI calls per request (provider rate limits)
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from uuid import UUID

from familygraph.config import Settings, get_settings
from familygraph.core.ai_results import RelationshipDetection
from familygraph.core.domain_types import (
    ContentId, ContentNode, CreationMethod, RelationshipType,
)
from familygraph.core.errors import (
    ConflictError, ExternalServiceError, NotFoundError, ResourceLimitError, ValidationError,
)
from familygraph.core.repository_protocols import ContentRepository, RelationshipClassifier
from familygraph.core.similarity import HeuristicScore, hint_for, score_candidate
from familygraph.infrastructure.ttl_cache import TTLCache
from familygraph.services.relationship_store import RelationshipStore

logger = logging.getLogger(__name__)


class SuggestionOrigin(str, Enum):
    AI = "ai"
    HEURISTIC = "heuristic"
    HINT = "hint"


@dataclass(frozen=True)
class Suggestion:
    target_id: ContentId
    relationship_type: RelationshipType
    confidence: float
    rationale: str
    origin: SuggestionOrigin
    auto_accepted: bool = False
    relationship_id: UUID | None = None


@dataclass(frozen=True)
class AutoAcceptPolicy:
    """Caller opt-in: create edges for suggestions at or above min_confidence."""
    min_confidence: float


class RelationshipSuggester:
    def __init__(
        self,
        store: RelationshipStore,
        content_repo: ContentRepository,
        classifier: RelationshipClassifier | None = None,
        cache: TTLCache | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.content_repo = content_repo
        self.classifier = classifier
        self.cache = cache

    async def find_candidates(
        self,
        content_id: ContentId,
        confidence_threshold: float | None = None,
        auto_accept: AutoAcceptPolicy | None = None,
    ) -> list[Suggestion]:
        threshold = (
            self.settings.suggestion_threshold
            if confidence_threshold is None else confidence_threshold
        )
        if not 0.0 <= threshold <= 1.0:
            raise ValidationError(
                f"Confidence threshold must be within [0, 1]: {threshold}",
                "confidence_threshold",
            )
        if auto_accept is not None:
            self._check_policy(auto_accept)

        scored = self.cache.get(content_id) if self.cache is not None else None
        if scored is None:
            scored = await self._score_all(content_id)
            if self.cache is not None:
                self.cache.set(content_id, scored)

        # Connections may have changed in another worker since the list was cached
        connected = await self.store.connected_content_ids(content_id)
        results = [
            s for s in scored
            if s.confidence >= threshold and s.target_id not in connected
        ]
        if auto_accept is not None:
            results = await self._auto_accept(content_id, results, auto_accept)

        logger.info(
            "Suggestions generated",
            extra={
                "content_id": content_id,
                "candidate_count": len(scored),
                "suggestion_count": len(results),
            },
        )
        return results

    def _check_policy(self, policy: AutoAcceptPolicy) -> None:
        floor = self.settings.suggestion_auto_accept_floor
        if not floor <= policy.min_confidence <= 1.0:
            raise ValidationError(
                f"Auto-accept threshold must be within [{floor}, 1.0]: "
                f"{policy.min_confidence}",
                "auto_accept",
            )

    async def _score_all(self, content_id: ContentId) -> tuple[Suggestion, ...]:
        source = await self.content_repo.find_by_id(content_id)
        if source is None:
            raise NotFoundError("Content", content_id)

        connected = await self.store.connected_content_ids(content_id)
        candidates = await self.content_repo.list_candidates(
            source, self.settings.suggestion_max_candidates,
        )

        work = []
        for candidate in candidates:
            if candidate.id == content_id or candidate.id in connected:
                continue
            heuristic = score_candidate(source, candidate)
            hint = hint_for(source, candidate)
            if hint is None and heuristic.confidence < self.settings.suggestion_prefilter_score:
                continue
            work.append((candidate, heuristic, hint))

        semaphore = asyncio.Semaphore(self.settings.suggestion_ai_concurrency)
        suggestions = await asyncio.gather(*(
            self._score_one(source, candidate, heuristic, hint, semaphore)
            for candidate, heuristic, hint in work
        ))
        return tuple(sorted(
            suggestions, key=lambda s: (-s.confidence, str(s.target_id)),
        ))

    async def _score_one(
        self,
        source: ContentNode,
        candidate: ContentNode,
        heuristic: HeuristicScore,
        hint: HeuristicScore | None,
        semaphore: asyncio.Semaphore,
    ) -> Suggestion:
        detection = await self._classify(source, candidate, semaphore)
        if detection is not None:
            suggestion = Suggestion(
                target_id=candidate.id,
                relationship_type=detection.relationship_type,
                confidence=detection.confidence,
                rationale=detection.rationale,
                origin=SuggestionOrigin.AI,
            )
        else:
            suggestion = Suggestion(
                target_id=candidate.id,
                relationship_type=heuristic.relationship_type,
                confidence=heuristic.confidence,
                rationale=heuristic.rationale,
                origin=SuggestionOrigin.HEURISTIC,
            )
        if hint is not None and hint.confidence > suggestion.confidence:
            suggestion = Suggestion(
                target_id=candidate.id,
                relationship_type=hint.relationship_type,
                confidence=hint.confidence,
                rationale=hint.rationale,
                origin=SuggestionOrigin.HINT,
            )
        return suggestion

    async def _classify(
        self,
        source: ContentNode,
        candidate: ContentNode,
        semaphore: asyncio.Semaphore,
    ) -> RelationshipDetection | None:
        """AI verdict for one pair, or None when the classifier is unavailable."""
        if self.classifier is None:
            return None
        extra = {"source_id": source.id, "target_id": candidate.id}
        try:
            async with semaphore:
                result = await asyncio.wait_for(
                    self.classifier.classify_relationship(source, candidate),
                    timeout=self.settings.suggestion_ai_timeout_seconds,
                )
        except asyncio.TimeoutError:
            logger.warning("AI classification timed out, using heuristics", extra=extra)
            return None
        except ExternalServiceError as e:
            logger.warning(
                f"AI classification failed, using heuristics: {e.message}",
                extra={**extra, "error_code": e.code},
            )
            return None
        except Exception as e:
            logger.warning(
                f"AI classifier raised {type(e).__name__}, using heuristics: {e}",
                extra=extra,
            )
            return None

        if not isinstance(result, RelationshipDetection):
            logger.warning(
                f"AI classification unusable ({getattr(result, 'error', result.kind)}), "
                "using heuristics",
                extra=extra,
            )
            return None
        return result

    async def _auto_accept(
        self,
        content_id: ContentId,
        suggestions: list[Suggestion],
        policy: AutoAcceptPolicy,
    ) -> list[Suggestion]:
        accepted = []
        for suggestion in suggestions:
            if suggestion.confidence < policy.min_confidence:
                accepted.append(suggestion)
                continue
            try:
                rel = await self.store.create(
                    content_id,
                    suggestion.target_id,
                    suggestion.relationship_type,
                    confidence=suggestion.confidence,
                    creation_method=CreationMethod.AI_SUGGESTED,
                )
            except (ConflictError, ResourceLimitError) as e:
                logger.info(
                    f"Auto-accept skipped: {e.message}",
                    extra={"content_id": content_id, "target_id": suggestion.target_id},
                )
                accepted.append(suggestion)
                continue
            accepted.append(replace(
                suggestion, auto_accepted=True, relationship_id=rel.id,
            ))
        return accepted
