"""Domain Types — verifies enum vocabularies and lenient parsing.

Tests:
    - RelationshipType and CreationMethod have the expected members
    - parse helpers are case-insensitive and return None for unknown values
"""

from uuid import uuid4

from familygraph.core.domain_types import (
    ContentId, CreationMethod, MANUAL_CONFIDENCE, RelationshipType,
    parse_creation_method, parse_relationship_type,
)


def test_identity_types_wrap_uuid():
    uid = uuid4()
    assert ContentId(uid) == uid


def test_relationship_type_has_five_kinds():
    assert {t.value for t in RelationshipType} == {
        "parent", "derivative", "repurposed", "reaction", "reference",
    }


def test_creation_method_has_three_origins():
    assert {m.value for m in CreationMethod} == {
        "manual", "ai_suggested", "platform_detected",
    }


def test_manual_confidence_is_certain():
    assert MANUAL_CONFIDENCE == 1.0


def test_parse_relationship_type():
    assert parse_relationship_type(" Parent ") is RelationshipType.PARENT
    assert parse_relationship_type("sibling") is None


def test_parse_creation_method():
    assert parse_creation_method("AI_SUGGESTED") is CreationMethod.AI_SUGGESTED
    assert parse_creation_method("scraped") is None
