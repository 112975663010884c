"""Match Result Cache - Redis caching for pair scores and ranked lists."""
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from redis import Redis

from core.cache.keys import (
    ALL_INDEXES_PATTERN,
    ALL_PROJECT_LISTS_PATTERN,
    ALL_SCORES_PATTERN,
    ALL_STUDENT_LISTS_PATTERN,
)
from core.scorer.errors import ScoringErrorCode

logger = logging.getLogger(__name__)

# 1 hour in seconds
CACHE_TTL_SECONDS = 60 * 60

SCAN_BATCH_SIZE = 500


def _sanitize_url(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            sanitized = parsed._replace(
                netloc=f"{parsed.username or ''}:*@{parsed.hostname}:{parsed.port or 6379}"
            )
            return sanitized.geturl()
        return url
    except Exception:
        return url


@dataclass(frozen=True)
class CacheEntry:
    """Envelope stored under every cache key."""
    value: Any
    cached_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def to_json(self) -> str:
        return json.dumps({
            "data": self.value,
            "cached_at": self.cached_at,
            "expires_at": self.expires_at,
        })

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        payload = json.loads(raw)
        return cls(
            value=payload["data"],
            cached_at=float(payload["cached_at"]),
            expires_at=float(payload["expires_at"]),
        )


class ResultCache:
    """
    Shared cache for pair scores and ranked lists.

    Three logical namespaces live in one Redis database (see keys.py), all
    with the same TTL. Every store or serialization failure is logged with
    CACHE_UNAVAILABLE and becomes a miss, False or 0; callers never see it.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        password: Optional[str] = None,
        ttl_seconds: int = CACHE_TTL_SECONDS,
        socket_timeout: float = 2.0,
        clock: Callable[[], float] = time.time,
        client: Optional[Redis] = None
    ):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._redis: Optional[Redis] = client
        self._failures = 0
        self._failures_lock = threading.Lock()

        if client is not None:
            return

        try:
            self._redis = Redis.from_url(
                redis_url,
                password=password,
                decode_responses=True,
                socket_connect_timeout=socket_timeout,
                socket_timeout=socket_timeout
            )
            self._redis.ping()
            logger.info(f"Match cache connected to Redis at {_sanitize_url(redis_url)}")
        except Exception as e:
            # client is kept; redis-py reconnects on the next command
            self._record_failure("connect", _sanitize_url(redis_url), e)

    @property
    def client(self) -> Optional[Redis]:
        return self._redis

    @property
    def failure_count(self) -> int:
        return self._failures

    @property
    def is_available(self) -> bool:
        """Check if cache is available."""
        if not self._redis:
            return False
        try:
            return bool(self._redis.ping())
        except Exception:
            return False

    def _record_failure(self, operation: str, key: str, error: Exception) -> None:
        with self._failures_lock:
            self._failures += 1
        logger.warning(
            f"[{ScoringErrorCode.CACHE_UNAVAILABLE.value}] Match cache {operation} failed for {key}: {error}"
        )

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss, expiry or failure."""
        if not self._redis:
            return None

        try:
            raw = self._redis.get(key)
            if raw is None:
                logger.debug(f"Cache miss for {key}")
                return None

            entry = CacheEntry.from_json(raw)
            if entry.is_expired(self._clock()):
                logger.debug(f"Cache entry expired for {key}")
                self._redis.delete(key)
                return None

            logger.debug(f"Cache hit for {key}")
            return entry.value

        except Exception as e:
            self._record_failure("read", key, e)
            return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """Write value with TTL. Returns False when the write did not happen."""
        if not self._redis:
            return False

        try:
            ttl = ttl_seconds or self.ttl_seconds
            now = self._clock()
            entry = CacheEntry(value=value, cached_at=now, expires_at=now + ttl)
            self._redis.setex(key, ttl, entry.to_json())
            logger.debug(f"Cached {key} (TTL: {ttl}s)")
            return True

        except Exception as e:
            self._record_failure("write", key, e)
            return False

    def delete_key(self, key: str) -> bool:
        """Remove one key. Returns True if the key existed."""
        if not self._redis:
            return False

        try:
            return bool(self._redis.delete(key))
        except Exception as e:
            self._record_failure("delete", key, e)
            return False

    def _scan(self, pattern: str) -> Iterable[List[str]]:
        cursor = 0
        while True:
            cursor, keys = self._redis.scan(cursor=cursor, match=pattern, count=SCAN_BATCH_SIZE)
            if keys:
                yield keys
            if cursor == 0:
                break

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a MATCH glob. Returns the number deleted."""
        if not self._redis:
            return 0

        deleted = 0
        try:
            for keys in self._scan(pattern):
                deleted += self._redis.delete(*keys)
            logger.debug(f"Deleted {deleted} keys matching {pattern}")
            return deleted
        except Exception as e:
            self._record_failure("pattern delete", pattern, e)
            return deleted

    def count_pattern(self, pattern: str) -> int:
        if not self._redis:
            return 0
        try:
            return sum(len(keys) for keys in self._scan(pattern))
        except Exception as e:
            self._record_failure("scan", pattern, e)
            return 0

    def add_to_index(self, index_key: str, members: Iterable[str], ttl_seconds: Optional[int] = None) -> bool:
        """Add members to a reverse-index set and refresh its TTL."""
        members = list(members)
        if not self._redis or not members:
            return False

        try:
            pipe = self._redis.pipeline()
            pipe.sadd(index_key, *members)
            pipe.expire(index_key, ttl_seconds or self.ttl_seconds)
            pipe.execute()
            return True
        except Exception as e:
            self._record_failure("index write", index_key, e)
            return False

    def pop_index(self, index_key: str) -> Optional[List[str]]:
        """Read and delete a reverse-index set atomically.

        Returns None when the store could not be read, so callers can tell
        "no entries" apart from "unknown".
        """
        if not self._redis:
            return None

        try:
            pipe = self._redis.pipeline()
            pipe.smembers(index_key)
            pipe.delete(index_key)
            members, _ = pipe.execute()
            return sorted(members or [])
        except Exception as e:
            self._record_failure("index read", index_key, e)
            return None

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        if not self.is_available:
            return {"available": False, "failures": self._failures}

        return {
            "available": True,
            "ttl_seconds": self.ttl_seconds,
            "score_keys": self.count_pattern(ALL_SCORES_PATTERN),
            "student_list_keys": self.count_pattern(ALL_STUDENT_LISTS_PATTERN),
            "project_list_keys": self.count_pattern(ALL_PROJECT_LISTS_PATTERN),
            "index_keys": self.count_pattern(ALL_INDEXES_PATTERN),
            "failures": self._failures,
        }

    def clear_all(self) -> int:
        """Clear every match-cache namespace. Use with caution."""
        deleted = 0
        for pattern in (
            ALL_SCORES_PATTERN,
            ALL_STUDENT_LISTS_PATTERN,
            ALL_PROJECT_LISTS_PATTERN,
            ALL_INDEXES_PATTERN,
        ):
            deleted += self.delete_pattern(pattern)
        logger.info(f"Cleared {deleted} keys from match cache")
        return deleted


# Global instance for application use
_match_cache: Optional[ResultCache] = None


def get_match_cache() -> Optional[ResultCache]:
    """Get global match cache instance."""
    return _match_cache


def init_match_cache(
    redis_url: str,
    password: Optional[str] = None,
    ttl_seconds: int = CACHE_TTL_SECONDS,
    socket_timeout: float = 2.0
) -> ResultCache:
    """Initialize global match cache."""
    global _match_cache
    _match_cache = ResultCache(redis_url, password, ttl_seconds, socket_timeout)
    return _match_cache
