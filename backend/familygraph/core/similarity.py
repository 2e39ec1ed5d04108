"""Relationship Heuristics — lexical, temporal and format-based scoring of candidate pairs.

Invariants:
    - All functions are PURE: no IO, no async
    - score_candidate returns confidence in [0, 0.99] — heuristics never claim certainty
    - Component caps: title 0.3, description 0.2, publish proximity 0.2, format pattern 0.2

Design Decisions:
    - Word overlap over embeddings: deterministic, dependency-free prefilter before the AI call
    - Only words longer than 3 chars count: drops stop-words without a stop list
"""

import re
from dataclasses import dataclass

from familygraph.core.domain_types import ContentNode, RelationshipType, ContentType, Platform

HEURISTIC_CAP = 0.99
PROXIMITY_WINDOW_DAYS = 7.0
HINT_CONFIDENCE = 0.9

_WORD = re.compile(r"\W+")

_LONG_FORM = {ContentType.VIDEO.value, ContentType.PODCAST.value}
_SHORT_FORM = {ContentType.SHORT_VIDEO.value, ContentType.PHOTO.value}
_SOCIAL_POST = {ContentType.POST.value, ContentType.PHOTO.value}
_CLIP_PLATFORMS = {Platform.INSTAGRAM.value, Platform.TIKTOK.value}


@dataclass(frozen=True)
class HeuristicScore:
    confidence: float
    relationship_type: RelationshipType
    reasons: tuple[str, ...]

    @property
    def rationale(self) -> str:
        return "; ".join(self.reasons) if self.reasons else "no heuristic signal"


def _words(text: str) -> list[str]:
    return [w for w in _WORD.split((text or "").lower()) if w]


def word_overlap(source_text: str, candidate_text: str) -> float:
    """Share of the source's words (len > 3) that also appear in the candidate, in [0, 1]."""
    source_words = _words(source_text)
    if not source_words:
        return 0.0
    candidate_words = set(_words(candidate_text))
    shared = sum(1 for w in source_words if len(w) > 3 and w in candidate_words)
    return min(shared / max(len(source_words), 1), 1.0)


def days_between(source: ContentNode, candidate: ContentNode) -> float | None:
    if source.published_at is None or candidate.published_at is None:
        return None
    delta = candidate.published_at - source.published_at
    return delta.total_seconds() / 86_400


def score_candidate(source: ContentNode, candidate: ContentNode) -> HeuristicScore:
    """Score how likely candidate derives from (or relates to) source."""
    score = 0.0
    reasons: list[str] = []
    rel_type = RelationshipType.DERIVATIVE

    title = word_overlap(source.title, candidate.title)
    if title:
        score += title * 0.3
        reasons.append(f"title overlap {title:.2f}")

    if source.description and candidate.description:
        desc = word_overlap(source.description, candidate.description)
        if desc:
            score += desc * 0.2
            reasons.append(f"description overlap {desc:.2f}")

    gap = days_between(source, candidate)
    if gap is not None:
        proximity = max(0.0, (PROXIMITY_WINDOW_DAYS - abs(gap)) / PROXIMITY_WINDOW_DAYS)
        if proximity:
            score += proximity * 0.2
            reasons.append(f"published {abs(gap):.1f} days apart")

    pattern = _format_pattern(source, candidate, gap)
    if pattern is not None:
        rel_type, bonus, reason = pattern
        score += bonus
        reasons.append(reason)

    return HeuristicScore(
        confidence=min(round(score, 6), HEURISTIC_CAP),
        relationship_type=rel_type,
        reasons=tuple(reasons),
    )


def _format_pattern(
    source: ContentNode, candidate: ContentNode, gap: float | None,
) -> tuple[RelationshipType, float, str] | None:
    if source.content_type in _LONG_FORM and candidate.content_type in _SHORT_FORM:
        return RelationshipType.PARENT, 0.2, "long-form source with short-form candidate"
    if source.content_type == ContentType.ARTICLE.value and candidate.content_type in _SOCIAL_POST:
        return RelationshipType.PARENT, 0.2, "article source with social post candidate"
    if source.platform == Platform.YOUTUBE.value and candidate.platform in _CLIP_PLATFORMS:
        return RelationshipType.PARENT, 0.15, "YouTube source repurposed to short-form platform"
    if gap is not None and 0 < gap <= PROXIMITY_WINDOW_DAYS:
        return RelationshipType.PARENT, 0.1, "candidate published shortly after source"
    if gap is not None and -PROXIMITY_WINDOW_DAYS <= gap < 0:
        return RelationshipType.REFERENCE, 0.05, "candidate published shortly before source"
    return None


def hint_for(source: ContentNode, candidate: ContentNode) -> HeuristicScore | None:
    """Platform-supplied linkage: the candidate declares it was made from source."""
    if source.id in candidate.linked_content_ids:
        return HeuristicScore(
            HINT_CONFIDENCE, RelationshipType.DERIVATIVE,
            (f"{candidate.platform} reports it links to the source",),
        )
    if candidate.id in source.linked_content_ids:
        return HeuristicScore(
            HINT_CONFIDENCE, RelationshipType.REFERENCE,
            (f"{source.platform} reports the source links to it",),
        )
    return None
