import json
import logging

import redis.asyncio as redis

from blog.config import settings

logger = logging.getLogger(__name__)

FRONT_PAGE_PREFIX = "blog:front"
SIDEBAR_KEY = "blog:sidebar"


class CacheManager:
    """
    Cache-aside store for serialised catalog listings.

    Redis is optional. Without a connection every read is a miss and every
    write is dropped; Redis errors are logged at DEBUG and swallowed, so a
    cache outage only costs latency.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits = 0
        self._misses = 0

    async def connect(self, url: str | None = None) -> None:
        self._redis = redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", url or settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis unavailable, caching disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def get(self, key: str) -> dict | list | None:
        if not self._redis:
            self._misses += 1
            return None
        try:
            raw = await self._redis.get(key)
        except Exception as exc:
            logger.debug("Cache GET failed for %r: %s", key, exc)
            raw = None
        if raw is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(raw)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET failed for %r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching *pattern* (SCAN based); returns how many went."""
        if not self._redis:
            return 0
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
            return len(keys)
        except Exception as exc:
            logger.debug("Cache invalidation failed for %r: %s", pattern, exc)
            return 0

    async def invalidate_catalog(self) -> None:
        """
        Drop every cached listing.

        Called after any write that can change what the front page or the
        sidebar shows (article content, moderation, category, tags, the
        category list, deletion).
        """
        removed = await self.delete_pattern(f"{FRONT_PAGE_PREFIX}:*")
        removed += await self.delete_pattern(SIDEBAR_KEY)
        if removed:
            logger.debug("Invalidated %d cached listing(s)", removed)

    @property
    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "enabled": self.enabled,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total else 0.0,
        }


cache = CacheManager()
