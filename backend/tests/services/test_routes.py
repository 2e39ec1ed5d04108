"""API Routes — verifies status codes and the error envelope over HTTP.

Invariants:
    - Create returns 201, delete 204, confirm 200
    - Domain errors use the structured envelope: cycle 409, unknown content 404
    - Invalid enums and self-relationships are rejected with 400 before reaching the store
    - Health is always 200; readiness checks the (test) database
"""

from uuid import uuid4


async def _create(client, source, target, relationship_type="parent", **extra):
    return await client.post("/api/v1/relationships", json={
        "source_content_id": str(source),
        "target_content_id": str(target),
        "relationship_type": relationship_type,
        **extra,
    })


async def test_create_and_get_relationship(client, make_content):
    a, b = await make_content("A"), await make_content("B")

    response = await _create(client, a, b, confidence=0.8)
    assert response.status_code == 201
    body = response.json()
    assert body["relationship_type"] == "parent"
    assert body["confidence"] == 0.8
    assert body["creation_method"] == "manual"
    assert body["path"] == f"{a.hex}.{b.hex}"

    fetched = await client.get(f"/api/v1/relationships/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["id"] == body["id"]


async def test_cycle_returns_conflict_envelope(client, make_content):
    a, b, c = await make_content("A"), await make_content("B"), await make_content("C")
    await _create(client, a, b)
    await _create(client, b, c)

    response = await _create(client, c, a)

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "CONFLICT_CYCLE"
    assert error["category"] == "conflict"
    assert error["context"]["cycle_path"] == [str(c), str(a), str(b), str(c)]


async def test_invalid_type_is_rejected(client, make_content):
    a, b = await make_content("A"), await make_content("B")
    response = await _create(client, a, b, relationship_type="sibling")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_self_relationship_is_rejected(client, make_content):
    a = await make_content("A")
    response = await _create(client, a, a)
    assert response.status_code == 400


async def test_unknown_content_is_not_found(client, make_content):
    a = await make_content("A")
    response = await _create(client, a, uuid4())
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_update_and_delete(client, make_content):
    a, b = await make_content("A"), await make_content("B")
    rel_id = (await _create(client, a, b)).json()["id"]

    patched = await client.patch(
        f"/api/v1/relationships/{rel_id}", json={"relationship_type": "reaction"},
    )
    assert patched.status_code == 200
    assert patched.json()["path"] is None

    deleted = await client.delete(f"/api/v1/relationships/{rel_id}")
    assert deleted.status_code == 204
    missing = await client.get(f"/api/v1/relationships/{rel_id}")
    assert missing.status_code == 404


async def test_confirm_relationship(client, make_content):
    a, b = await make_content("A"), await make_content("B")
    rel_id = (await _create(
        client, a, b, confidence=0.7, creation_method="ai_suggested",
    )).json()["id"]

    response = await client.post(f"/api/v1/relationships/{rel_id}/confirm")
    assert response.status_code == 200
    assert response.json()["creation_method"] == "manual"
    assert response.json()["confidence"] == 1.0


async def test_family_metrics_and_visualization(client, make_content):
    root = await make_content("Root", views=1000)
    clip = await make_content("Clip", platform="tiktok", content_type="short_video", views=500)
    await _create(client, root, clip)

    family = await client.get(f"/api/v1/families/{root}")
    assert family.status_code == 200
    body = family.json()
    assert {n["content_id"] for n in body["nodes"]} == {str(root), str(clip)}
    assert body["depth"] == 1
    assert len(body["edges"]) == 1

    metrics = await client.get(f"/api/v1/families/{root}/metrics")
    assert metrics.status_code == 200
    assert metrics.json()["content_count"] == 2
    assert metrics.json()["audience_overlap"]["is_estimate"] is True

    viz = await client.get(f"/api/v1/families/{root}/visualization?size_metric=likes")
    assert viz.status_code == 200
    assert viz.json()["size_metric"] == "likes"

    bad = await client.get(f"/api/v1/families/{root}/visualization?size_metric=followers")
    assert bad.status_code == 400


async def test_unknown_family_root(client):
    response = await client.get(f"/api/v1/families/{uuid4()}")
    assert response.status_code == 404


async def test_suggestions_and_confirm(client, make_content):
    source = await make_content("Sourdough bread masterclass")
    clip = await make_content(
        "Sourdough bread masterclass", platform="tiktok", content_type="short_video", days=1,
    )

    response = await client.get(f"/api/v1/content/{source}/suggestions?threshold=0.5")
    assert response.status_code == 200
    body = response.json()
    assert body["threshold"] == 0.5
    assert [s["target_id"] for s in body["suggestions"]] == [str(clip)]
    assert body["suggestions"][0]["origin"] == "heuristic"

    confirmed = await client.post(
        f"/api/v1/content/{source}/suggestions/confirm",
        json={"target_id": str(clip), "relationship_type": "parent"},
    )
    assert confirmed.status_code == 201
    assert confirmed.json()["creation_method"] == "manual"

    again = await client.get(f"/api/v1/content/{source}/suggestions?threshold=0.5")
    assert again.json()["suggestions"] == []


async def test_auto_accept_below_floor_is_rejected(client, make_content):
    source = await make_content("Source")
    response = await client.get(
        f"/api/v1/content/{source}/suggestions?threshold=0.5&auto_accept=0.5",
    )
    assert response.status_code == 400


async def test_health_and_readiness(client):
    health = await client.get("/api/v1/health/")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"

    ready = await client.get("/api/v1/health/ready")
    assert ready.status_code == 200
    assert ready.json()["status"] == "ready"
