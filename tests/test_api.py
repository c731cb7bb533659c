"""
Tests for the Hustle Data API.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from hustle_data.api.app import USER_ID_HEADER, app
from hustle_data.entities import User
from hustle_data.services.base import POSTS, USERS
from hustle_data.services.mapping import to_document

ALICE = {USER_ID_HEADER: "alice"}
BOB = {USER_ID_HEADER: "bob"}

POST = {
    "title": "Lawn care",
    "description": "Mowing, edging and leaf pickup",
    "category": "Landscaping",
    "price": 40,
    "tags": ["garden"],
}


@pytest.fixture
def client():
    """Create a test client with the lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


def add_user(client, user_id, name):
    container = client.app.state.container
    user = User(id=user_id, name=name, email=f"{user_id}@example.com")
    asyncio.run(container.documents.set(USERS, user_id, to_document(user)))


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Hustle Data API"
    assert "posts" in data["endpoints"]


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "cache_healthy": True, "documents_healthy": True}


def test_create_and_get_post(client):
    """Test creating a post as the calling user."""
    add_user(client, "alice", "Alice")
    response = client.post("/posts", json=POST, headers=ALICE)
    assert response.status_code == 201
    post_id = response.json()["id"]

    response = client.get(f"/posts/{post_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == "alice"
    assert data["user_name"] == "Alice"
    assert data["category"] == "Landscaping"
    assert data["is_active"] is True


def test_create_post_without_caller(client):
    """Test that anonymous writes are rejected with 401."""
    response = client.post("/posts", json=POST)
    assert response.status_code == 401


def test_create_post_invalid_fields(client):
    """Test that field rules surface as 422."""
    response = client.post("/posts", json={**POST, "title": "ab"}, headers=ALICE)
    assert response.status_code == 422


def test_get_missing_post(client):
    response = client.get("/posts/nope")
    assert response.status_code == 404


def test_update_post_owner_only(client):
    """Test that only the author may update a post."""
    post_id = client.post("/posts", json=POST, headers=ALICE).json()["id"]
    update = {**POST, "title": "Lawn and garden care", "status": "completed"}

    response = client.put(f"/posts/{post_id}", json=update, headers=BOB)
    assert response.status_code == 403

    response = client.put(f"/posts/{post_id}", json=update, headers=ALICE)
    assert response.status_code == 200
    assert response.json()["title"] == "Lawn and garden care"
    assert response.json()["status"] == "completed"


def test_update_post_keeps_stored_images(client):
    """Test that fields outside the request come from the store, not the cache."""
    post_id = client.post("/posts", json=POST, headers=ALICE).json()["id"]
    client.get(f"/posts/{post_id}")
    images = ["https://media.test/posts/alice/lawn.jpg"]
    documents = client.app.state.container.documents
    asyncio.run(documents.update(POSTS, post_id, {"image_urls": images}))

    response = client.put(f"/posts/{post_id}", json={**POST, "title": "Lawn and hedge care"}, headers=ALICE)
    assert response.status_code == 200
    assert response.json()["title"] == "Lawn and hedge care"
    assert response.json()["image_urls"] == images


def test_update_missing_post(client):
    response = client.put("/posts/nope", json=POST, headers=ALICE)
    assert response.status_code == 404


def test_delete_post_is_soft(client):
    post_id = client.post("/posts", json=POST, headers=ALICE).json()["id"]

    response = client.delete(f"/posts/{post_id}", headers=ALICE)
    assert response.status_code == 200
    assert response.json()["success"] is True

    assert client.get(f"/posts/{post_id}").json()["is_active"] is False
    assert post_id not in [item["id"] for item in client.get("/posts").json()["items"]]


def test_list_posts_with_cursor(client):
    """Test paging through posts with the id cursor."""
    for index in range(3):
        client.post("/posts", json={**POST, "title": f"Lawn care {index}"}, headers=ALICE)

    first = client.get("/posts", params={"limit": 2}).json()
    assert len(first["items"]) == 2
    assert first["has_more"] is True

    second = client.get("/posts", params={"limit": 2, "after": first["next_cursor"]}).json()
    assert len(second["items"]) == 1
    assert second["next_cursor"] is None

    seen = {item["id"] for item in first["items"] + second["items"]}
    assert len(seen) == 3


def test_list_posts_unknown_cursor(client):
    response = client.get("/posts", params={"after": "nope"})
    assert response.status_code == 404


def test_search_posts(client):
    client.post("/posts", json=POST, headers=ALICE)
    client.post("/posts", json={**POST, "title": "Dog walking", "tags": []}, headers=ALICE)

    response = client.get("/posts/search", params={"q": "DOG"})
    assert response.status_code == 200
    assert [post["title"] for post in response.json()] == ["Dog walking"]


def test_get_user(client):
    add_user(client, "bob", "Bob")

    response = client.get("/users/bob")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Bob"
    assert data["follower_count"] == 0

    assert client.get("/users/ghost").status_code == 404


def test_review_flow(client):
    """Test creating a review, listing it and reading the stats."""
    add_user(client, "alice", "Alice")
    add_user(client, "bob", "Bob")

    response = client.post(
        "/users/bob/reviews",
        json={"rating": 5, "text": "Fast and friendly work"},
        headers=ALICE,
    )
    assert response.status_code == 201
    review_id = response.json()["id"]

    reviews = client.get("/users/bob/reviews").json()
    assert [item["id"] for item in reviews["items"]] == [review_id]
    assert reviews["items"][0]["reviewer_name"] == "Alice"

    stats = client.get("/users/bob/reviews/stats").json()
    assert stats["average"] == 5.0
    assert stats["count"] == 1
    assert client.get("/users/bob").json()["rating"] == 5.0

    assert client.delete(f"/reviews/{review_id}", headers=BOB).status_code == 403
    assert client.delete(f"/reviews/{review_id}", headers=ALICE).status_code == 200
    assert client.get("/users/bob/reviews/stats").json()["count"] == 0


def test_self_review_is_rejected(client):
    response = client.post(
        "/users/alice/reviews",
        json={"rating": 5, "text": "I am simply the best"},
        headers=ALICE,
    )
    assert response.status_code == 422


def test_review_rating_out_of_range(client):
    response = client.post("/users/bob/reviews", json={"rating": 9, "text": "Off the charts"}, headers=ALICE)
    assert response.status_code == 422


def test_cache_stats_and_clear(client):
    """Test cache statistics and clearing."""
    post_id = client.post("/posts", json=POST, headers=ALICE).json()["id"]
    client.get(f"/posts/{post_id}")
    client.get(f"/posts/{post_id}")

    stats = client.get("/cache/stats").json()
    assert stats["total_entries"] >= 1
    assert stats["hits"] >= 1

    response = client.delete("/cache")
    assert response.status_code == 200
    assert response.json()["deleted_count"] == stats["total_entries"]
    assert client.get("/cache/stats").json()["total_entries"] == 0
