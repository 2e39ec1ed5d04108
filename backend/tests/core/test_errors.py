"""Error Hierarchy — verifies codes, statuses and the REST envelope.

Tests:
    - Each error maps to its HTTP status
    - ConflictError carries reason, offending ids and the cycle path
    - to_response never includes the Python traceback
"""

from uuid import uuid4

from familygraph.core.errors import (
    ConflictError, ExternalServiceError, NotFoundError, ResourceLimitError,
    StorageError, ValidationError,
)


def test_http_statuses():
    assert ValidationError("bad", "field").http_status == 400
    assert NotFoundError("Content", uuid4()).http_status == 404
    assert ConflictError("x", ConflictError.DUPLICATE, uuid4(), uuid4()).http_status == 409
    assert ResourceLimitError("family_max_nodes", 10, 11).http_status == 422
    assert ExternalServiceError("down", "anthropic", "timeout").http_status == 503
    assert StorageError("boom", "commit").http_status == 503


def test_conflict_envelope_includes_ids_and_cycle():
    a, b = uuid4(), uuid4()
    err = ConflictError(
        "cycle", ConflictError.CYCLE, a, b, cycle_path=[str(a), str(b), str(a)],
    )
    body = err.to_response()["error"]
    assert body["code"] == "CONFLICT_CYCLE"
    assert body["context"]["content_ids"] == [str(a), str(b)]
    assert body["context"]["reason"] == "cycle"
    assert body["context"]["cycle_path"] == [str(a), str(b), str(a)]


def test_not_found_records_resource_id():
    rid = uuid4()
    err = NotFoundError("Relationship", rid)
    assert err.context.relationship_id == str(rid)
    assert str(rid) in err.message
