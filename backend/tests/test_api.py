"""HTTP-level tests for the Battle Seoul API."""

import pytest
from fastapi.testclient import TestClient

from battle_seoul.core.database import get_session_factory
from main import app


@pytest.fixture
def client(session_factory):
    """Client bound to the per-test database; startup hooks are not run."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


def upload(client, creator_id, category="music", **extra):
    body = {
        "creator_id": creator_id,
        "creator_name": f"user {creator_id}",
        "title": f"{category} by {creator_id}",
        "category": category,
        "image_url": f"https://cdn.example.com/{creator_id}.jpg",
    }
    body.update(extra)
    response = client.post("/api/contenders", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "service": "battle-seoul-api"}


class TestContenderRoutes:

    def test_upload_image(self, client):
        contender = upload(client, "u1")
        assert contender["status"] == "available"
        assert contender["platform"] == "image"
        assert contender["media"] == {"platform": "image", "image_url": "https://cdn.example.com/u1.jpg"}
        assert contender["created_at"].endswith("Z")

    def test_upload_youtube_link(self, client):
        contender = upload(client, "u1", url="https://youtu.be/dQw4w9WgXcQ", image_url=None, start_time="0:30")
        assert contender["platform"] == "youtube"
        assert contender["media"]["time_range"] == {"start_seconds": 30, "end_seconds": 0}
        assert contender["image_url"] == "https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"

    def test_upload_unsupported_link(self, client):
        response = client.post("/api/contenders", json={
            "creator_id": "u1",
            "title": "mystery",
            "category": "food",
            "url": "https://example.com/clip.mp4",
        })
        assert response.status_code == 400

    def test_upload_without_media(self, client):
        response = client.post("/api/contenders", json={"creator_id": "u1", "title": "x", "category": "food"})
        assert response.status_code == 422

    def test_get_and_list(self, client):
        first = upload(client, "u1")
        upload(client, "u2", category="food")

        assert client.get(f"/api/contenders/{first['id']}").json()["title"] == first["title"]
        assert client.get("/api/contenders/999").status_code == 404
        food = client.get("/api/contenders", params={"category": "food"}).json()
        assert [c["creator_id"] for c in food] == ["u2"]


class TestMatchingRoutes:

    def test_run_then_cooldown(self, client):
        for creator in ("u1", "u2", "u3", "u4"):
            upload(client, creator)

        first = client.post("/api/matching/run", json={"max_matches": 3})
        second = client.post("/api/matching/run", json={})

        assert first.status_code == 200
        assert first.json()["success"] is True
        assert first.json()["matches_created"] == 2
        assert second.json()["success"] is False
        assert second.json()["reason"] == "cooldown"
        assert second.json()["next_matching_time"].endswith("Z")

    def test_run_rejects_bad_max_matches(self, client):
        assert client.post("/api/matching/run", json={"max_matches": 0}).status_code == 422

    def test_force(self, client):
        upload(client, "u1")
        upload(client, "u2")

        response = client.post("/api/matching/force")

        assert response.json()["forced"] is True
        assert response.json()["matches_created"] == 1
        assert client.post("/api/matching/force", params={"max_matches": 0}).status_code == 422

    def test_insufficient(self, client):
        upload(client, "u1")
        body = client.post("/api/matching/run", json={}).json()
        assert body["reason"] == "insufficient_contenders"

    def test_statistics(self, client):
        upload(client, "u1")
        upload(client, "u2", category="fashion")

        stats = client.get("/api/matching/statistics").json()

        assert stats["total_available_contenders"] == 2
        assert stats["cooldown_remaining"] == 0
        assert stats["category_distribution"]["fashion"] == 1


class TestBattleRoutes:

    def _battle(self, client):
        a = upload(client, "u1")
        b = upload(client, "u2")
        response = client.post("/api/battles", json={
            "contender_a_id": a["id"],
            "contender_b_id": b["id"],
            "creator_id": "u9",
        })
        assert response.json()["success"] is True
        return response.json()["battle"]

    def test_manual_battle(self, client):
        battle = self._battle(client)
        assert battle["matching_method"] == "manual"
        assert battle["status"] == "active"
        assert battle["current_leader"] == {"winner": "tie", "percentage": 50, "margin": 0}
        assert battle["live_status"]["status"] == "waiting"

    def test_manual_battle_rejection(self, client):
        a = upload(client, "u1")
        body = client.post("/api/battles", json={
            "contender_a_id": a["id"],
            "contender_b_id": a["id"],
            "creator_id": "u9",
        }).json()
        assert body["success"] is False
        assert body["reason"] == "same_contender"

    def test_vote_flow(self, client):
        battle = self._battle(client)
        battle_id = battle["id"]

        vote = client.post(f"/api/battles/{battle_id}/vote", json={"side": "itemA", "voter_id": "v1"}).json()
        again = client.post(f"/api/battles/{battle_id}/vote", json={"side": "itemB", "voter_id": "v1"}).json()
        check = client.get(f"/api/battles/{battle_id}/voted/v1").json()

        assert vote["success"] is True
        assert vote["reward"] == {"user_id": "v1", "points": 10, "reason": "battle_vote"}
        assert vote["battle"]["item_a"]["votes"] == 1
        assert again["reason"] == "already_voted"
        assert again["selected_side"] == "itemA"
        assert check == {"battle_id": battle_id, "user_id": "v1", "has_voted": True, "selected_side": "itemA"}

    def test_vote_bad_side(self, client):
        battle = self._battle(client)
        response = client.post(f"/api/battles/{battle['id']}/vote", json={"side": "itemC", "voter_id": "v1"})
        assert response.status_code == 422

    def test_vote_missing_battle(self, client):
        body = client.post("/api/battles/999/vote", json={"side": "itemA", "voter_id": "v1"}).json()
        assert body["reason"] == "battle_not_found"

    def test_get_and_list(self, client):
        battle = self._battle(client)

        assert client.get(f"/api/battles/{battle['id']}").json()["title"] == battle["title"]
        assert client.get("/api/battles/999").status_code == 404
        assert client.get("/api/battles/999/voted/v1").status_code == 404
        assert [b["id"] for b in client.get("/api/battles", params={"active_only": True}).json()] == [battle["id"]]

    def test_detail_counts_views(self, client):
        battle = self._battle(client)

        client.get(f"/api/battles/{battle['id']}", params={"viewer_id": "v1"})
        client.get(f"/api/battles/{battle['id']}", params={"viewer_id": "v1"})
        body = client.get(f"/api/battles/{battle['id']}").json()

        assert body["view_count"] == 2
        assert body["trending_score"] == 1.0
        assert body["is_hot"] is False

    def test_browse_routes(self, client):
        battle = self._battle(client)
        client.post(f"/api/battles/{battle['id']}/vote", json={"side": "itemB", "voter_id": "v1"})

        trending = client.get("/api/battles/trending").json()
        popular = client.get("/api/battles/popular", params={"limit": 5}).json()
        found = client.get("/api/battles/search", params={"q": "BY U1"}).json()
        mine = client.get("/api/battles/users/u9").json()
        related = client.get(f"/api/battles/{battle['id']}/related").json()

        assert [b["id"] for b in trending] == [battle["id"]]
        assert trending[0]["total_votes"] == 1
        assert [b["id"] for b in popular] == [battle["id"]]
        assert [b["id"] for b in found] == [battle["id"]]
        assert [b["id"] for b in mine] == [battle["id"]]
        assert related == []
        assert client.get("/api/battles/users/nobody").json() == []

    def test_browse_route_errors(self, client):
        assert client.get("/api/battles/999/related").status_code == 404
        assert client.get("/api/battles/search").status_code == 422
        assert client.get("/api/battles/trending", params={"limit": 0}).status_code == 422
