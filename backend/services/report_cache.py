"""
Report Cache - byte-level cache backends plus the typed CompositeReport port.

Backends (same shape: get/set/delete/clear/stats, values are bytes):
    TTLCache   - in-process, lock-guarded dict with max size (development/tests)
    RedisCache - redis.from_url + SETEX (production)

build_cache_backend() picks Redis when REDIS_URL is set, memory otherwise.

ReportCache wraps a backend with the dashboard's failure policy:
    - read errors (backend, JSON, schema) are logged and treated as a miss
    - write errors are logged and swallowed; the caller already has the report
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

import redis
from pydantic import ValidationError as PydanticValidationError

from schemas.hsse_report import CompositeReport

logger = logging.getLogger('hsse.cache')


# ============================================================================
# BACKENDS
# ============================================================================

class TTLCache:
    """Simple TTL cache with max size limit."""

    def __init__(self, maxsize: int = 500, ttl: int = 300, clock: Callable[[], float] = time.time):
        self._cache = {}
        self._maxsize = maxsize
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            if key in self._cache:
                value, expires_at, _ = self._cache[key]
                if self._clock() < expires_at:
                    return value
                else:
                    del self._cache[key]
            return None

    def set(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        now = self._clock()
        expires_at = now + (ttl if ttl is not None else self._ttl)
        with self._lock:
            # Evict oldest entries if at capacity
            if key not in self._cache and len(self._cache) >= self._maxsize:
                oldest_key = min(self._cache.keys(), key=lambda k: self._cache[k][2])
                del self._cache[oldest_key]
            self._cache[key] = (value, expires_at, now)

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        return {
            'backend': 'memory',
            'size': len(self._cache),
            'maxsize': self._maxsize,
            'ttl': self._ttl
        }


class RedisCache:
    """Redis-backed byte cache. Keys are used as-is; clear() only touches this namespace."""

    def __init__(self, client, namespace: str, ttl: int = 300):
        self._client = client
        self._namespace = namespace
        self._ttl = ttl

    @classmethod
    def from_url(cls, url: str, namespace: str, ttl: int = 300) -> 'RedisCache':
        return cls(redis.from_url(url), namespace=namespace, ttl=ttl)

    def get(self, key: str) -> Optional[bytes]:
        return self._client.get(key)

    def set(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        self._client.setex(key, ttl if ttl is not None else self._ttl, value)

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def clear(self) -> None:
        keys = list(self._client.scan_iter(match=f"{self._namespace}*"))
        if keys:
            self._client.delete(*keys)

    def stats(self) -> Dict[str, Any]:
        return {
            'backend': 'redis',
            'namespace': self._namespace,
            'ttl': self._ttl,
        }


def build_cache_backend(config) -> Any:
    """
    Redis in production, in-process TTL cache for development.

    Args:
        config: mapping with REDIS_URL, HSSE_CACHE_NAMESPACE,
                HSSE_CACHE_TTL_SECONDS and HSSE_CACHE_MAX_SIZE
    """
    ttl = int(config.get('HSSE_CACHE_TTL_SECONDS', 900))
    redis_url = config.get('REDIS_URL')
    if redis_url:
        logger.info("HSSE dashboard cache using Redis storage")
        return RedisCache.from_url(redis_url, namespace=config.get('HSSE_CACHE_NAMESPACE', 'hsse:dashboard'), ttl=ttl)
    logger.info("HSSE dashboard cache using in-memory storage")
    return TTLCache(maxsize=int(config.get('HSSE_CACHE_MAX_SIZE', 500)), ttl=ttl)


# ============================================================================
# TYPED PORT
# ============================================================================

class ReportCache:
    """CompositeReport cache with the dashboard's read/write failure policy."""

    def __init__(self, backend, default_ttl: Optional[int] = None):
        self._backend = backend
        self._default_ttl = default_ttl

    @property
    def backend(self):
        return self._backend

    def get(self, key: str) -> Optional[CompositeReport]:
        try:
            raw = self._backend.get(key)
        except Exception as e:
            logger.warning(f"Cache read error for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return CompositeReport.from_json_bytes(raw)
        except (PydanticValidationError, ValueError) as e:
            logger.warning(f"Discarding unreadable cached report {key}: {e}")
            return None

    def set(self, key: str, payload: bytes, ttl: Optional[int] = None) -> None:
        try:
            self._backend.set(key, payload, ttl if ttl is not None else self._default_ttl)
        except Exception as e:
            logger.warning(f"Cache write error for {key}: {e}")

    def invalidate(self, key: str) -> None:
        try:
            self._backend.delete(key)
        except Exception as e:
            logger.warning(f"Cache delete error for {key}: {e}")

    def clear(self) -> None:
        self._backend.clear()
        logger.info("HSSE dashboard cache cleared")

    def stats(self) -> Dict[str, Any]:
        try:
            return self._backend.stats()
        except Exception as e:
            logger.warning(f"Cache stats error: {e}")
            return {'error': str(e)}
