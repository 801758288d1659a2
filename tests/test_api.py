import pytest

from tests.conftest import ANA, BO, CY, ZERMATT, auth


@pytest.mark.asyncio
async def test_health(api_client):
    response = await api_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_mutating_routes_require_token(api_client):
    response = await api_client.post(f"/api/v1/social/follows/{BO}")
    assert response.status_code == 401

    response = await api_client.post(
        f"/api/v1/social/follows/{BO}", headers={"Authorization": "Bearer garbage"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_follow_request_flow(api_client):
    response = await api_client.post(f"/api/v1/social/follows/{BO}", headers=auth(ANA))
    assert response.status_code == 201
    assert response.json()["status"] == "pending"

    response = await api_client.post(f"/api/v1/social/follows/{BO}", headers=auth(ANA))
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"

    response = await api_client.get("/api/v1/social/follows/requests/pending", headers=auth(BO))
    assert [user["user_id"] for user in response.json()["users"]] == [ANA]

    response = await api_client.post(
        f"/api/v1/social/follows/requests/{ANA}",
        json={"action": "accept_friend"},
        headers=auth(BO),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "accepted"

    response = await api_client.get(f"/api/v1/social/relationships/{BO}", headers=auth(ANA))
    body = response.json()
    assert body["friendship_status"] == "friends"
    assert body["is_following"] is True
    assert body["is_followed_by"] is True

    response = await api_client.get(f"/api/v1/social/users/{ANA}/stats")
    assert response.json()["friend_count"] == 1

    response = await api_client.delete(f"/api/v1/social/friends/{BO}", headers=auth(ANA))
    assert response.json() == {"removed": 2}


@pytest.mark.asyncio
async def test_domain_errors_map_to_status_codes(api_client):
    response = await api_client.post(f"/api/v1/social/follows/{ANA}", headers=auth(ANA))
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_target"

    response = await api_client.post(
        f"/api/v1/social/follows/requests/{BO}", json={"action": "accept"}, headers=auth(ANA)
    )
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"

    await api_client.post(f"/api/v1/social/follows/{BO}", headers=auth(ANA))
    response = await api_client.post(
        f"/api/v1/social/follows/requests/{BO}", json={"action": "accept"}, headers=auth(ANA)
    )
    assert response.status_code == 403
    assert response.json()["code"] == "unauthorized"


@pytest.mark.asyncio
async def test_unknown_request_action_is_rejected(api_client):
    response = await api_client.post(
        f"/api/v1/social/follows/requests/{BO}", json={"action": "ignore"}, headers=auth(ANA)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_photo_share_like_and_feed(api_client):
    response = await api_client.post(
        "/api/v1/social/photos",
        json={
            "photo_url": "https://cdn.example.com/alps.jpg",
            "caption": "Alps",
            "destination_id": ZERMATT,
        },
        headers=auth(ANA),
    )
    assert response.status_code == 201
    share = response.json()
    assert share["photo_count"] == 1
    assert share["privacy"] == "public"

    response = await api_client.post(f"/api/v1/social/photos/{share['id']}/like", headers=auth(BO))
    assert response.json() == {"photo_share_id": share["id"], "liked": True, "like_count": 1}

    response = await api_client.post(f"/api/v1/social/photos/{share['id']}/like", headers=auth(BO))
    assert response.status_code == 409

    for _ in range(2):
        response = await api_client.delete(
            f"/api/v1/social/photos/{share['id']}/like", headers=auth(BO)
        )
        assert response.status_code == 200
        assert response.json()["like_count"] == 0

    response = await api_client.get("/api/v1/social/feed", headers=auth(ANA))
    assert response.status_code == 200
    items = response.json()["items"]
    shared = [item for item in items if item["activity_type"] == "photo_shared"]
    assert len(shared) == 1
    assert shared[0]["destination_name"] == "Zermatt"
    assert shared[0]["user_nickname"] == "ana"


@pytest.mark.asyncio
async def test_share_without_photos_is_bad_request(api_client):
    response = await api_client.post(
        "/api/v1/social/photos", json={"caption": "nothing"}, headers=auth(ANA)
    )
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_target"


@pytest.mark.asyncio
async def test_private_share_hidden_from_anonymous_reader(api_client):
    response = await api_client.post(
        "/api/v1/social/photos",
        json={"photo_url": "https://cdn.example.com/me.jpg", "privacy": "private"},
        headers=auth(ANA),
    )
    share_id = response.json()["id"]

    response = await api_client.get(f"/api/v1/social/photos/{share_id}")
    assert response.status_code == 403

    response = await api_client.get(f"/api/v1/social/photos/{share_id}", headers=auth(ANA))
    assert response.status_code == 200

    response = await api_client.get(f"/api/v1/social/users/{ANA}/photos")
    assert response.json() == {"items": [], "count": 0}

    response = await api_client.delete(f"/api/v1/social/photos/{share_id}", headers=auth(BO))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_user_activities_and_cursor(api_client):
    for name in ("One", "Two", "Three"):
        response = await api_client.post(
            "/api/v1/social/activities/trips",
            json={"activity_type": "trip_created", "trip_id": 100, "trip_name": name},
            headers=auth(ANA),
        )
        assert response.status_code == 201

    response = await api_client.get(f"/api/v1/social/users/{ANA}/activities?limit=2")
    page = response.json()
    assert [item["metadata"]["trip_name"] for item in page["items"]] == ["Three", "Two"]
    assert page["has_more"] is True

    response = await api_client.get(
        f"/api/v1/social/users/{ANA}/activities",
        params={"limit": 2, "cursor": page["next_cursor"]},
    )
    page = response.json()
    assert [item["metadata"]["trip_name"] for item in page["items"]] == ["One"]
    assert page["next_cursor"] is None

    response = await api_client.get(
        f"/api/v1/social/users/{ANA}/activities", params={"cursor": "bm9waXBl"}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_destination_activity_route(api_client):
    response = await api_client.post(
        "/api/v1/social/activities/destinations",
        json={
            "activity_type": "destination_visited",
            "destination_id": ZERMATT,
            "destination_name": "Zermatt",
        },
        headers=auth(ANA),
    )
    assert response.status_code == 201
    assert response.json()["metadata"] == {"destination_name": "Zermatt"}

    response = await api_client.post(
        "/api/v1/social/activities/destinations",
        json={"activity_type": "trip_created", "destination_id": 1, "destination_name": "X"},
        headers=auth(ANA),
    )
    assert response.status_code == 400


async def _record_trip(api_client, user_id=ANA):
    response = await api_client.post(
        "/api/v1/social/activities/trips",
        json={"activity_type": "trip_created", "trip_id": 100, "trip_name": "Alps"},
        headers=auth(user_id),
    )
    assert response.status_code == 201
    return response.json()["id"]


@pytest.mark.asyncio
async def test_activity_like_routes(api_client):
    activity_id = await _record_trip(api_client)
    url = f"/api/v1/social/activities/{activity_id}/like"

    response = await api_client.post(url)
    assert response.status_code == 401

    response = await api_client.post(url, headers=auth(BO))
    assert response.json() == {"activity_id": activity_id, "liked": True, "like_count": 1}

    response = await api_client.post(url, headers=auth(BO))
    assert response.status_code == 409

    response = await api_client.post(f"{url}/toggle", headers=auth(CY))
    assert response.json()["like_count"] == 2

    response = await api_client.get(
        "/api/v1/social/activities/likes", params={"activity_ids": [activity_id]}
    )
    assert response.json() == [{"activity_id": activity_id, "like_count": 2, "user_liked": False}]

    response = await api_client.delete(url, headers=auth(BO))
    assert response.json() == {"activity_id": activity_id, "liked": False, "like_count": 1}

    response = await api_client.post("/api/v1/social/activities/999/like", headers=auth(BO))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_activity_comment_routes(api_client):
    activity_id = await _record_trip(api_client)

    response = await api_client.post(
        f"/api/v1/social/activities/{activity_id}/comments",
        json={"content": "Have fun!"},
        headers=auth(BO),
    )
    assert response.status_code == 201
    comment = response.json()
    assert comment["user_nickname"] == "bo"

    response = await api_client.post(
        f"/api/v1/social/activities/{activity_id}/comments",
        json={"content": "  "},
        headers=auth(BO),
    )
    assert response.status_code == 400

    response = await api_client.get(
        "/api/v1/social/activities/comments", params={"activity_ids": [activity_id]}
    )
    assert [c["content"] for c in response.json()] == ["Have fun!"]

    response = await api_client.delete(
        f"/api/v1/social/activities/comments/{comment['id']}", headers=auth(ANA)
    )
    assert response.status_code == 403

    response = await api_client.delete(
        f"/api/v1/social/activities/comments/{comment['id']}", headers=auth(BO)
    )
    assert response.json() == {"message": "Comment deleted"}


@pytest.mark.asyncio
async def test_notification_routes(api_client):
    activity_id = await _record_trip(api_client)
    await api_client.post(f"/api/v1/social/activities/{activity_id}/like", headers=auth(BO))
    await api_client.post(
        f"/api/v1/social/activities/{activity_id}/comments",
        json={"content": "Jealous"},
        headers=auth(CY),
    )

    response = await api_client.get("/api/v1/social/notifications")
    assert response.status_code == 401

    response = await api_client.get("/api/v1/social/notifications", headers=auth(ANA))
    body = response.json()
    assert body["count"] == 2
    assert [n["notification_type"] for n in body["items"]] == ["comment", "like"]
    assert body["items"][0]["content"] == "Jealous"

    response = await api_client.get("/api/v1/social/notifications/unread-count", headers=auth(ANA))
    assert response.json() == {"count": 2}

    response = await api_client.post("/api/v1/social/notifications/read", headers=auth(ANA))
    assert response.status_code == 200
    assert "last_read_at" in response.json()

    response = await api_client.get("/api/v1/social/notifications/unread-count", headers=auth(ANA))
    assert response.json() == {"count": 0}
