"""
Cached listings: the front page and sidebar are served from Redis until a
catalog write drops them.
"""
import pytest
from httpx import AsyncClient

from blog.cache import SIDEBAR_KEY, cache


async def _article(client: AsyncClient, title: str = "Article", **fields) -> int:
    resp = await client.post("/api/v1/articles", json={"title": title, **fields})
    assert resp.status_code == 201
    return resp.json()["id"]


@pytest.mark.asyncio
async def test_front_page_served_from_cache(async_client: AsyncClient, redis_cache):
    await _article(async_client, "Cached")
    first = (await async_client.get("/api/v1/articles")).json()
    hits = cache.stats["hits"]

    second = (await async_client.get("/api/v1/articles")).json()
    assert second == first
    assert cache.stats["hits"] == hits + 1
    assert any(key.startswith("blog:front:") for key in redis_cache.store)


@pytest.mark.asyncio
async def test_tag_change_refreshes_front_page(async_client: AsyncClient, redis_cache):
    tag = (await async_client.post("/api/v1/tags", json={"title": "py"})).json()
    article_id = await _article(async_client, "A")

    before = (await async_client.get("/api/v1/articles")).json()
    assert before["items"][0]["tags"] == []

    resp = await async_client.put(f"/api/v1/articles/{article_id}/tags", json={"tags": [tag["id"]]})
    assert resp.json()["tags"] == [{"id": tag["id"], "title": "py"}]

    after = (await async_client.get("/api/v1/articles")).json()
    assert after["items"][0]["tags"] == [{"id": tag["id"], "title": "py"}]

    await async_client.put(f"/api/v1/articles/{article_id}/tags", json={"tags": []})
    cleared = (await async_client.get("/api/v1/articles")).json()
    assert cleared["items"][0]["tags"] == []


@pytest.mark.asyncio
async def test_new_category_refreshes_sidebar(async_client: AsyncClient, redis_cache):
    data = (await async_client.get("/api/v1/sidebar")).json()
    assert data["categories"] == []
    assert SIDEBAR_KEY in redis_cache.store

    await async_client.post("/api/v1/categories", json={"title": "Travel"})
    assert SIDEBAR_KEY not in redis_cache.store

    data = (await async_client.get("/api/v1/sidebar")).json()
    assert [c["title"] for c in data["categories"]] == ["Travel"]
