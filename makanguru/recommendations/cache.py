from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")

_cache: dict[str, dict[str, Any]] = {}
_hits: int = 0
_misses: int = 0
_lock = threading.Lock()
DEFAULT_TTL = int(os.getenv("PLACES_CACHE_TTL", "3600"))


def cache_get(key: str) -> Any | None:
    global _hits, _misses
    with _lock:
        entry = _cache.get(key)
        if entry and time.time() < entry["expires_at"]:
            _hits += 1
            return entry["value"]
        if entry:
            del _cache[key]
        _misses += 1
        return None


def cache_set(key: str, value: Any, ttl: int = DEFAULT_TTL) -> None:
    with _lock:
        _cache[key] = {"value": value, "expires_at": time.time() + ttl}


def remember(key: str, ttl: int, compute: Callable[[], T]) -> T:
    """Return the cached value for ``key``, computing and storing it on a miss."""
    cached = cache_get(key)
    if cached is not None:
        return cached
    value = compute()
    cache_set(key, value, ttl)
    return value


def forget_prefix(prefix: str) -> int:
    with _lock:
        keys = [k for k in _cache if k.startswith(prefix)]
        for k in keys:
            del _cache[k]
        return len(keys)


def get_cache_stats() -> dict:
    total = _hits + _misses
    return {
        "size": len(_cache),
        "hits": _hits,
        "misses": _misses,
        "hit_rate": round(_hits / total * 100, 1) if total > 0 else 0.0,
    }


def clear_cache() -> None:
    global _hits, _misses
    with _lock:
        _cache.clear()
        _hits = 0
        _misses = 0
