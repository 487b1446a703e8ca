"""
Redis-backed store for relay responses and auxiliary payloads.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import redis.asyncio as redis

from shared.logging import get_logger


@dataclass
class CachedResponse:
    """Full response representation as stored in the cache."""

    status_code: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps({
            "status_code": self.status_code,
            "headers": self.headers,
            "body": self.body,
        })

    @classmethod
    def from_json(cls, raw: str) -> "CachedResponse":
        data = json.loads(raw)
        return cls(
            status_code=int(data["status_code"]),
            body=data["body"],
            headers=dict(data.get("headers") or {}),
        )


class ResponseCache:
    """Key/value cache addressed by URL-shaped keys.

    Read failures are reported as misses and write/delete failures return
    ``False``; callers never see a Redis exception.
    """

    KEY_PREFIX = "relay:"

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.logger = get_logger("relay.cache")
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url)
        return self._redis

    def _make_key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}{key}"

    async def _get_raw(self, key: str) -> Optional[str]:
        try:
            redis_client = await self._get_redis()
            cached = await redis_client.get(self._make_key(key))
        except Exception as e:
            self.logger.error("Cache get error", key=key, error=str(e))
            return None

        if cached is None:
            return None
        return cached.decode("utf-8") if isinstance(cached, bytes) else cached

    async def _set_raw(self, key: str, value: str, ttl: int) -> bool:
        try:
            redis_client = await self._get_redis()
            await redis_client.setex(self._make_key(key), max(1, int(ttl)), value)
            self.logger.debug("Cached value", key=key, ttl=ttl)
            return True
        except Exception as e:
            self.logger.error("Cache set error", key=key, error=str(e))
            return False

    async def get(self, key: str) -> Optional[CachedResponse]:
        """Get a stored response, or None on miss."""
        raw = await self._get_raw(key)
        if raw is None:
            return None
        try:
            return CachedResponse.from_json(raw)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning("Discarding malformed cached response", key=key, error=str(e))
            return None

    async def put(self, key: str, response: CachedResponse, ttl: int) -> bool:
        """Store a response representation under key."""
        return await self._set_raw(key, response.to_json(), ttl)

    async def get_json(self, key: str) -> Optional[Any]:
        """Get a JSON payload, or None on miss."""
        raw = await self._get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            self.logger.warning("Failed to deserialize cached payload", key=key)
            return None

    async def put_json(self, key: str, value: Any, ttl: int) -> bool:
        """Store a JSON-serializable payload under key."""
        return await self._set_raw(key, json.dumps(value, ensure_ascii=False), ttl)

    async def delete(self, key: str) -> bool:
        """Delete an entry; missing keys count as success."""
        try:
            redis_client = await self._get_redis()
            await redis_client.delete(self._make_key(key))
            self.logger.info("Deleted cache entry", key=key)
            return True
        except Exception as e:
            self.logger.error("Cache delete error", key=key, error=str(e))
            return False

    async def ping(self) -> bool:
        try:
            redis_client = await self._get_redis()
            return bool(await redis_client.ping())
        except Exception as e:
            self.logger.warning("Cache ping failed", error=str(e))
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
