"""
Endpoint tests for comments (with moderation), users, taxonomy listings,
the sidebar and metrics.
"""
import pytest
from httpx import AsyncClient


async def _article(client: AsyncClient, title: str = "Article", **fields) -> int:
    resp = await client.post("/api/v1/articles", json={"title": title, **fields})
    assert resp.status_code == 201
    return resp.json()["id"]


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_comment_needs_moderation(async_client: AsyncClient):
    article_id = await _article(async_client)

    resp = await async_client.post(
        f"/api/v1/articles/{article_id}/comments", json={"text": "Nice read"}
    )
    assert resp.status_code == 201
    comment = resp.json()
    assert comment["status"] == 0
    assert comment["article_id"] == article_id

    listing = await async_client.get(f"/api/v1/articles/{article_id}/comments")
    assert listing.json() == []

    resp = await async_client.post(f"/api/v1/comments/{comment['id']}/allow")
    assert resp.status_code == 200
    assert resp.json()["status"] == 1

    listing = await async_client.get(f"/api/v1/articles/{article_id}/comments")
    assert [c["text"] for c in listing.json()] == ["Nice read"]

    await async_client.post(f"/api/v1/comments/{comment['id']}/disallow")
    listing = await async_client.get(f"/api/v1/articles/{article_id}/comments")
    assert listing.json() == []


@pytest.mark.asyncio
async def test_comment_on_missing_article(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/articles/999/comments", json={"text": "hello?"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_comment_with_unknown_user(async_client: AsyncClient):
    article_id = await _article(async_client)
    resp = await async_client.post(
        f"/api/v1/articles/{article_id}/comments", json={"text": "hi", "user_id": 31337}
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_moderate_missing_comment(async_client: AsyncClient):
    assert (await async_client.post("/api/v1/comments/5/allow")).status_code == 404
    assert (await async_client.post("/api/v1/comments/5/disallow")).status_code == 404


@pytest.mark.asyncio
async def test_comments_removed_with_article(async_client: AsyncClient):
    article_id = await _article(async_client)
    resp = await async_client.post(
        f"/api/v1/articles/{article_id}/comments", json={"text": "bye"}
    )
    comment_id = resp.json()["id"]

    assert (await async_client.delete(f"/api/v1/articles/{article_id}")).status_code == 204
    assert (await async_client.post(f"/api/v1/comments/{comment_id}/allow")).status_code == 404


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_and_get_user(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/v1/users", json={"name": "Ann", "email": "ann@example.com"}
    )
    assert resp.status_code == 201
    user = resp.json()
    assert user["is_admin"] is False

    resp = await async_client.get(f"/api/v1/users/{user['id']}")
    assert resp.status_code == 200
    assert resp.json()["email"] == "ann@example.com"


@pytest.mark.asyncio
async def test_duplicate_email_returns_409(async_client: AsyncClient):
    payload = {"name": "Bob", "email": "bob@example.com"}
    assert (await async_client.post("/api/v1/users", json=payload)).status_code == 201
    assert (await async_client.post("/api/v1/users", json=payload)).status_code == 409


@pytest.mark.asyncio
async def test_get_missing_user(async_client: AsyncClient):
    assert (await async_client.get("/api/v1/users/404")).status_code == 404


@pytest.mark.asyncio
async def test_article_author(async_client: AsyncClient):
    user = (
        await async_client.post("/api/v1/users", json={"name": "Cy", "email": "cy@example.com"})
    ).json()
    article_id = await _article(async_client, "By Cy", user_id=user["id"])

    detail = (await async_client.get(f"/api/v1/articles/{article_id}")).json()
    assert detail["author"]["name"] == "Cy"

    resp = await async_client.post("/api/v1/articles", json={"title": "Orphan", "user_id": 999})
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Taxonomy / sidebar / metrics
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_tags_listing(async_client: AsyncClient):
    for title in ("b", "a"):
        await async_client.post("/api/v1/tags", json={"title": title})
    tags = (await async_client.get("/api/v1/tags")).json()
    assert [t["title"] for t in tags] == ["b", "a"]

    assert (await async_client.post("/api/v1/tags", json={"title": ""})).status_code == 422


@pytest.mark.asyncio
async def test_sidebar(async_client: AsyncClient):
    cat = (await async_client.post("/api/v1/categories", json={"title": "Food"})).json()
    await async_client.post("/api/v1/categories", json={"title": "Empty"})
    for i in range(4):
        await _article(async_client, f"S{i}", category_id=cat["id"])

    data = (await async_client.get("/api/v1/sidebar")).json()
    assert len(data["popular"]) == 3
    assert len(data["recent"]) == 3
    assert {c["title"]: c["article_count"] for c in data["categories"]} == {"Food": 4, "Empty": 0}


@pytest.mark.asyncio
async def test_metrics(async_client: AsyncClient):
    first = await _article(async_client, "One")
    second = await _article(async_client, "Two")
    await async_client.post(f"/api/v1/articles/{second}/disallow")
    await async_client.get(f"/api/v1/articles/{first}")
    await async_client.get(f"/api/v1/articles/{first}")
    await async_client.post(f"/api/v1/articles/{first}/comments", json={"text": "c"})

    data = (await async_client.get("/api/v1/metrics")).json()
    assert data["total_articles"] == 2
    assert data["published_articles"] == 1
    assert data["total_views"] == 2
    assert data["total_comments"] == 1
    assert data["cache_info"]["enabled"] is False


@pytest.mark.asyncio
async def test_cors_no_credentials_with_wildcard_origin(async_client: AsyncClient):
    resp = await async_client.get("/health", headers={"Origin": "http://example.com"})
    assert resp.headers.get("access-control-allow-origin") == "*"
    assert "access-control-allow-credentials" not in resp.headers
