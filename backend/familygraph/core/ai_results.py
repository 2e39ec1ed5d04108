"""AI Result Parsing — turns loosely-typed model output into a discriminated result per operation.

Invariants:
    - All functions are PURE: no IO, no async
    - parse_ai_result ALWAYS returns one of the result dataclasses, never a raw dict
    - Anything that cannot be validated becomes UnparsedResult (raw text preserved, truncated)
    - RelationshipDetection.confidence is clamped to [0, 1]; type is a RelationshipType

Design Decisions:
    - 3 extraction levels (direct JSON, first {...} block, raw fallback): models wrap JSON
      in markdown fences or add preambles
    - kind field on every variant: callers dispatch with isinstance or match on kind,
      never on dict keys
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from familygraph.core.domain_types import RelationshipType, parse_relationship_type

logger = logging.getLogger(__name__)

RAW_TEXT_LIMIT = 500


class AIOperation(str, Enum):
    CONTENT_ANALYSIS = "content_analysis"
    RELATIONSHIP_DETECTION = "relationship_detection"
    FEATURE_EXTRACTION = "feature_extraction"


@dataclass(frozen=True)
class RelationshipDetection:
    relationship_type: RelationshipType
    confidence: float
    rationale: str
    kind: str = AIOperation.RELATIONSHIP_DETECTION.value


@dataclass(frozen=True)
class ContentAnalysis:
    topics: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    summary: str = ""
    kind: str = AIOperation.CONTENT_ANALYSIS.value


@dataclass(frozen=True)
class FeatureExtraction:
    features: dict = field(default_factory=dict)
    keywords: tuple[str, ...] = ()
    kind: str = AIOperation.FEATURE_EXTRACTION.value


@dataclass(frozen=True)
class UnparsedResult:
    operation: str
    raw_text: str
    error: str
    kind: str = "unparsed"


AIResult = Union[RelationshipDetection, ContentAnalysis, FeatureExtraction, UnparsedResult]


def extract_json(text: str) -> dict | list | None:
    """Extract JSON from model text. Handles markdown wrapping and preambles."""
    text = (text or "").strip()
    if not text:
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = re.search(r"\{[\s\S]*\}", text)
    if match:
        try:
            return json.loads(match.group())
        except json.JSONDecodeError:
            pass
    return None


def parse_ai_result(operation: AIOperation, text: str) -> AIResult:
    """Parse model text for the given operation into its typed result."""
    payload = extract_json(text)
    if payload is None:
        logger.warning("AI returned non-JSON response", extra={"operation": operation.value})
        return _unparsed(operation, text, "response is not JSON")

    if operation == AIOperation.RELATIONSHIP_DETECTION:
        return _parse_relationship(payload, text)
    if operation == AIOperation.CONTENT_ANALYSIS:
        return _parse_analysis(payload, text)
    return _parse_features(payload, text)


def _parse_relationship(payload, text: str) -> AIResult:
    if isinstance(payload, list):
        payload = payload[0] if payload and isinstance(payload[0], dict) else {}
    if not isinstance(payload, dict):
        return _unparsed(AIOperation.RELATIONSHIP_DETECTION, text, "expected an object")

    raw_type = payload.get("relationship_type") or payload.get("relationshipType") or payload.get("type")
    rel_type = parse_relationship_type(raw_type) if raw_type else None
    if rel_type is None:
        return _unparsed(
            AIOperation.RELATIONSHIP_DETECTION, text, f"unknown relationship type {raw_type!r}",
        )

    try:
        confidence = float(payload.get("confidence"))
    except (TypeError, ValueError):
        return _unparsed(AIOperation.RELATIONSHIP_DETECTION, text, "confidence is not a number")

    rationale = payload.get("rationale") or payload.get("justification") or payload.get("reason") or ""
    return RelationshipDetection(
        relationship_type=rel_type,
        confidence=min(max(confidence, 0.0), 1.0),
        rationale=str(rationale)[:RAW_TEXT_LIMIT],
    )


def _parse_analysis(payload, text: str) -> AIResult:
    if not isinstance(payload, dict) or not (
        payload.get("topics") or payload.get("categories") or payload.get("analysis")
    ):
        return _unparsed(AIOperation.CONTENT_ANALYSIS, text, "no topics, categories or analysis")
    return ContentAnalysis(
        topics=tuple(str(t) for t in payload.get("topics") or ()),
        categories=tuple(str(c) for c in payload.get("categories") or ()),
        summary=str(payload.get("analysis") or payload.get("summary") or ""),
    )


def _parse_features(payload, text: str) -> AIResult:
    if not isinstance(payload, dict) or not (
        payload.get("features") or payload.get("keywords") or payload.get("categories")
    ):
        return _unparsed(AIOperation.FEATURE_EXTRACTION, text, "no features or keywords")
    features = payload.get("features") or {}
    if not isinstance(features, dict):
        features = {"values": features}
    return FeatureExtraction(
        features=features,
        keywords=tuple(str(k) for k in payload.get("keywords") or ()),
    )


def _unparsed(operation: AIOperation, text: str, error: str) -> UnparsedResult:
    return UnparsedResult(
        operation=operation.value,
        raw_text=(text or "")[:RAW_TEXT_LIMIT],
        error=error,
    )
