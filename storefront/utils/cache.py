"""Simple in-memory TTL cache for expensive dashboard queries."""
import time
from typing import Any

_cache: dict[str, tuple[float, Any]] = {}
_MISS = object()

# Which cache key prefixes depend on which kind of record.
# Used by clear_for_source() so an article edit doesn't nuke sales caches etc.
_SOURCE_PREFIXES: dict[str, list[str]] = {
    "orders": ["analytics_", "orders_analytics"],
    "products": ["analytics_dashboard", "analytics_sales"],
    "articles": ["analytics_dashboard", "articles_analytics"],
    "users": ["analytics_dashboard"],
}


def get_cached(key: str):
    """Return cached value if still valid, else _MISS sentinel."""
    now = time.time()
    if key in _cache:
        expires, value = _cache[key]
        if now < expires:
            return value
    return _MISS


def set_cached(key: str, value: Any, seconds: int = 300):
    """Store a value in cache with TTL."""
    _cache[key] = (time.time() + seconds, value)


def clear_cache():
    """Clear all cached values."""
    _cache.clear()


def clear_for_source(source: str):
    """Clear only cache entries affected by a change to one kind of record."""
    prefixes = _SOURCE_PREFIXES.get(source)
    if prefixes is None:
        # Unknown source, clear everything
        _cache.clear()
        return
    keys_to_remove = [
        k for k in _cache
        if any(k.startswith(p) for p in prefixes)
    ]
    for k in keys_to_remove:
        del _cache[k]
