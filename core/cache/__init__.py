"""Cache Module - Match result caching and invalidation."""
from core.cache.match_cache import (
    CacheEntry,
    ResultCache,
    get_match_cache,
    init_match_cache,
    CACHE_TTL_SECONDS
)
from core.cache.invalidation import (
    EntityEvent,
    InvalidationCoordinator,
    InvalidationListener,
    InvalidationReport
)

__all__ = [
    'CacheEntry',
    'ResultCache',
    'get_match_cache',
    'init_match_cache',
    'CACHE_TTL_SECONDS',
    'EntityEvent',
    'InvalidationCoordinator',
    'InvalidationListener',
    'InvalidationReport'
]
