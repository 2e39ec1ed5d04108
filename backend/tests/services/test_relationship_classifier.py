"""Relationship Classifier — verifies prompt content and parsing of model answers.

Invariants:
    - A well-formed JSON answer becomes a RelationshipDetection
    - Markdown-wrapped or prose-prefixed JSON is still parsed
    - Garbage or unknown types become UnparsedResult, never an exception
    - ExternalServiceError from the client propagates unchanged
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from familygraph.core.ai_results import RelationshipDetection, UnparsedResult
from familygraph.core.domain_types import ContentNode, RelationshipType
from familygraph.core.errors import ExternalServiceError
from familygraph.services.relationship_classifier import (
    AnthropicRelationshipClassifier, build_pair_prompt,
)
from tests.services.mock_anthropic import MockAnthropicClient, text_response

SOURCE = ContentNode(
    id=uuid4(), platform="youtube", content_type="video",
    title="Sourdough bread masterclass", description="Full walkthrough",
    published_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
)
CLIP = ContentNode(
    id=uuid4(), platform="tiktok", content_type="short_video",
    title="Shaping the loaf in 30 seconds",
)


def _classifier(*responses):
    client = MockAnthropicClient(responses)
    return AnthropicRelationshipClassifier(client, "test-model", max_tokens=123), client


async def test_parses_detection():
    classifier, client = _classifier(text_response(
        '{"relationship_type": "parent", "confidence": 0.82, "rationale": "clip of the bake"}'
    ))
    result = await classifier.classify_relationship(SOURCE, CLIP)

    assert isinstance(result, RelationshipDetection)
    assert result.relationship_type is RelationshipType.PARENT
    assert result.confidence == 0.82
    assert result.rationale == "clip of the bake"

    call = client.calls[0]
    assert call["model"] == "test-model"
    assert call["max_tokens"] == 123
    assert call["context"].content_ids == [str(SOURCE.id), str(CLIP.id)]


async def test_markdown_wrapped_answer_is_parsed():
    classifier, _ = _classifier(text_response(
        'Here is my answer:\n```json\n{"relationship_type": "Reaction", "confidence": 0.4}\n```'
    ))
    result = await classifier.classify_relationship(SOURCE, CLIP)
    assert result.relationship_type is RelationshipType.REACTION
    assert result.rationale == ""


async def test_confidence_is_clamped():
    classifier, _ = _classifier(text_response(
        '{"relationship_type": "reference", "confidence": 7}'
    ))
    result = await classifier.classify_relationship(SOURCE, CLIP)
    assert result.confidence == 1.0


async def test_non_json_answer_is_unparsed():
    classifier, _ = _classifier(text_response("I cannot tell."))
    result = await classifier.classify_relationship(SOURCE, CLIP)
    assert isinstance(result, UnparsedResult)
    assert result.raw_text == "I cannot tell."


async def test_unknown_type_is_unparsed():
    classifier, _ = _classifier(text_response(
        '{"relationship_type": "cousin", "confidence": 0.9}'
    ))
    result = await classifier.classify_relationship(SOURCE, CLIP)
    assert isinstance(result, UnparsedResult)
    assert "cousin" in result.error


async def test_client_errors_propagate():
    classifier, _ = _classifier(ExternalServiceError("boom", "anthropic", "client_error"))
    with pytest.raises(ExternalServiceError):
        await classifier.classify_relationship(SOURCE, CLIP)


def test_prompt_carries_public_metadata_only():
    prompt = build_pair_prompt(SOURCE, CLIP)
    assert "Sourdough bread masterclass" in prompt
    assert "short_video" in prompt
    assert "2026-03-01" in prompt
    assert str(SOURCE.id) not in prompt
    assert "repurposed" in prompt
