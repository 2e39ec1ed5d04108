"""Relationship Classifier — asks a small Claude model how two content items relate.

Invariants:
    - Returns a typed AIResult (core/ai_results.py), never raw model text
    - Malformed model output becomes UnparsedResult (the suggester falls back to heuristics)
    - API failures propagate as ExternalServiceError; retries live in ResilientAnthropicClient
    - Prompt only carries public metadata (platform, type, title, description, publish date)

Design Decisions:
    - Haiku-class model via settings.classifier_model: one short JSON answer per pair
    - System prompt is static; the pair is the only dynamic content
"""

import json
import logging

from familygraph.core.ai_results import AIOperation, AIResult, parse_ai_result
from familygraph.core.domain_types import ContentNode, RelationshipType
from familygraph.core.errors import ErrorContext
from familygraph.infrastructure.anthropic_client import ResilientAnthropicClient

logger = logging.getLogger(__name__)

_DESCRIPTION_LIMIT = 1_000

_SYSTEM_PROMPT = (
    "You classify how two pieces of content published by the same creator relate.\n"
    "Given a SOURCE and a CANDIDATE, decide whether the candidate was produced from "
    "the source and how.\n\n"
    "Relationship types:\n"
    "- parent: the candidate is cut or adapted directly from the source "
    "(clip, teaser, excerpt, platform re-edit)\n"
    "- derivative: the candidate builds on the source with new material\n"
    "- repurposed: the same material republished in another format or platform\n"
    "- reaction: the candidate responds to or comments on the source\n"
    "- reference: the candidate only mentions or links the source\n\n"
    "Respond with ONLY a JSON object, no markdown:\n"
    '{"relationship_type": "<one of the types>", "confidence": <0.0-1.0>, '
    '"rationale": "<one or two sentences>"}\n'
    "Use a low confidence when the two items look unrelated."
)


class AnthropicRelationshipClassifier:
    """RelationshipClassifier backed by the Anthropic Messages API."""

    def __init__(
        self,
        client: ResilientAnthropicClient,
        model: str,
        max_tokens: int = 400,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    async def classify_relationship(
        self, source: ContentNode, target: ContentNode, options: dict | None = None,
    ) -> AIResult:
        options = options or {}
        response = await self.client.create_message(
            model=options.get("model", self.model),
            max_tokens=options.get("max_tokens", self.max_tokens),
            system=_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": build_pair_prompt(source, target)}],
            context=ErrorContext(content_ids=[str(source.id), str(target.id)]),
        )
        text = _response_text(response)
        result = parse_ai_result(AIOperation.RELATIONSHIP_DETECTION, text)
        logger.debug(
            "Relationship classified",
            extra={
                "source_id": source.id,
                "target_id": target.id,
                "operation": result.kind,
            },
        )
        return result


def build_pair_prompt(source: ContentNode, target: ContentNode) -> str:
    return (
        f"SOURCE:\n{json.dumps(_describe(source), ensure_ascii=False)}\n\n"
        f"CANDIDATE:\n{json.dumps(_describe(target), ensure_ascii=False)}\n\n"
        f"Allowed types: {', '.join(t.value for t in RelationshipType)}"
    )


def _describe(node: ContentNode) -> dict:
    return {
        "platform": node.platform,
        "content_type": node.content_type,
        "title": node.title,
        "description": (node.description or "")[:_DESCRIPTION_LIMIT],
        "published_at": node.published_at.isoformat() if node.published_at else None,
    }


def _response_text(response) -> str:
    """Concatenate text blocks of a Messages API response."""
    parts = []
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "text":
            parts.append(block.text)
    return "\n".join(parts)
