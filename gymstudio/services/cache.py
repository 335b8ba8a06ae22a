from __future__ import annotations

from datetime import datetime, timedelta
from fnmatch import fnmatchcase
from functools import lru_cache
import hashlib
import json
import logging
import threading
from typing import Any

import redis
from redis.exceptions import RedisError

from ..config import Settings, get_settings
from ..core.constants import CLASSES_CACHE_KEY

logger = logging.getLogger(__name__)


class ClassCache:
    """TTL cache for class listing/detail payloads.

    Values are JSON-compatible structures. Redis is used when configured and
    reachable; otherwise entries live in a process-local dict.
    """

    def __init__(self, ttl_seconds: int, redis_client: redis.Redis | None = None) -> None:
        self.ttl_seconds = ttl_seconds
        self.redis = redis_client
        self._memory: dict[str, tuple[datetime, str]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def fingerprint(data: dict[str, Any]) -> str:
        payload = json.dumps(data, sort_keys=True, default=str)
        return hashlib.md5(payload.encode()).hexdigest()[:12]

    @staticmethod
    def key(*parts: Any) -> str:
        return ":".join([CLASSES_CACHE_KEY, *(str(part) for part in parts)])

    def _drop_redis(self, exc: RedisError) -> None:
        logger.warning("Redis cache unavailable (%s); using in-memory cache", exc)
        self.redis = None

    def get(self, key: str) -> Any | None:
        if self.redis is not None:
            try:
                raw = self.redis.get(key)
            except RedisError as exc:
                self._drop_redis(exc)
            else:
                return json.loads(raw) if raw is not None else None
        with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                return None
            expires_at, raw = entry
            if datetime.now() >= expires_at:
                del self._memory[key]
                return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        serialized = json.dumps(value, default=str)
        if self.redis is not None:
            try:
                self.redis.setex(key, self.ttl_seconds, serialized)
                return
            except RedisError as exc:
                self._drop_redis(exc)
        with self._lock:
            self._memory[key] = (datetime.now() + timedelta(seconds=self.ttl_seconds), serialized)

    def delete_pattern(self, pattern: str) -> int:
        count = 0
        if self.redis is not None:
            try:
                for key in self.redis.scan_iter(match=pattern):
                    count += int(self.redis.delete(key))
            except RedisError as exc:
                self._drop_redis(exc)
        with self._lock:
            for key in [k for k in self._memory if fnmatchcase(k, pattern)]:
                del self._memory[key]
                count += 1
        return count

    def invalidate_classes(self) -> None:
        removed = self.delete_pattern(f"{CLASSES_CACHE_KEY}:*")
        logger.debug("Invalidated %s class schedule cache entries", removed)

    def clear(self) -> None:
        with self._lock:
            self._memory.clear()


def build_cache(settings: Settings) -> ClassCache:
    client = None
    if settings.cache_backend == "redis":
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            decode_responses=True,
            socket_connect_timeout=5,
        )
    return ClassCache(settings.cache_ttl_seconds, client)


@lru_cache(maxsize=1)
def get_cache() -> ClassCache:
    return build_cache(get_settings())


__all__ = ["ClassCache", "build_cache", "get_cache"]
