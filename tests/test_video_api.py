import pytest

from models import VideoStatus


@pytest.mark.asyncio
async def test_list_only_ready_videos_with_counts(client, make_videos, auth_headers):
    ready = await make_videos(3)
    await make_videos(1, status=VideoStatus.processing)
    await make_videos(1, status=VideoStatus.deleted)
    await client.post("/videos/vote", json={"video_id": ready[0], "voter_id": "1"}, headers=auth_headers)
    await client.post("/videos/vote", json={"video_id": ready[0], "voter_id": "2"}, headers=auth_headers)

    response = await client.get("/videos/", params={"voter_id": "1"})
    assert response.status_code == 200
    page = response.json()
    assert page["total"] == 3
    by_id = {item["id"]: item for item in page["items"]}
    assert set(by_id) == set(ready)
    assert by_id[ready[0]]["vote_count"] == 2
    assert by_id[ready[0]]["user_has_voted"] is True
    assert by_id[ready[1]]["vote_count"] == 0
    assert by_id[ready[1]]["user_has_voted"] is False


@pytest.mark.asyncio
async def test_list_is_paginated(client, make_videos):
    await make_videos(4)

    response = await client.get("/videos/", params={"limit": 3, "offset": 0})
    page = response.json()
    assert page["total"] == 4
    assert page["limit"] == 3
    assert len(page["items"]) == 3
    assert page["items"][0]["user_has_voted"] is None

    response = await client.get("/videos/", params={"limit": 3, "offset": 3})
    assert len(response.json()["items"]) == 1


@pytest.mark.asyncio
async def test_get_video(client, make_videos):
    [video_id] = await make_videos(1, with_external_id=True)

    response = await client.get(f"/videos/{video_id}")
    assert response.status_code == 200
    assert response.json()["id"] == video_id
    assert response.json()["vote_count"] == 0

    external_id = video_id.replace("video_test_", "drive_")
    response = await client.get(f"/videos/{external_id}")
    assert response.json()["id"] == video_id

    response = await client.get("/videos/ghost")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_video(client, operator_headers):
    payload = {"title": "Partner reel", "external_id": "drive_abc"}

    response = await client.post("/videos/", json=payload, headers=operator_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["id"].startswith("video_")
    assert body["status"] == "processing"
    assert body["external_id"] == "drive_abc"
    assert body["vote_count"] == 0

    response = await client.post("/videos/", json=payload, headers=operator_headers)
    assert response.status_code == 409

    response = await client.post("/videos/", json={"title": ""}, headers=operator_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_catalog_changes_require_operator_key(client, make_videos, operator_headers):
    [video_id] = await make_videos(1)

    assert (await client.post("/videos/", json={"title": "Partner reel"})).status_code == 401
    response = await client.patch(f"/videos/{video_id}/status", json={"status": "error"})
    assert response.status_code == 401
    assert (await client.delete(f"/videos/{video_id}")).status_code == 401

    assert (await client.get(f"/videos/{video_id}")).json()["status"] == "ready"


@pytest.mark.asyncio
async def test_update_status_and_delete(client, operator_headers):
    response = await client.post("/videos/", json={"title": "Partner reel"}, headers=operator_headers)
    video_id = response.json()["id"]

    response = await client.patch(f"/videos/{video_id}/status", json={"status": "ready"}, headers=operator_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "ready"
    assert (await client.get("/videos/")).json()["total"] == 1

    response = await client.delete(f"/videos/{video_id}", headers=operator_headers)
    assert response.status_code == 200
    assert response.json()["id"] == video_id

    assert (await client.get(f"/videos/{video_id}")).status_code == 404
    assert (await client.get("/videos/")).json()["total"] == 0

    response = await client.patch("/videos/ghost/status", json={"status": "ready"}, headers=operator_headers)
    assert response.status_code == 404
    response = await client.delete("/videos/ghost", headers=operator_headers)
    assert response.status_code == 404
