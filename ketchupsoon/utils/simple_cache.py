import time
import threading
import functools
import hashlib
from typing import Any, Optional, Tuple, Dict, Callable


class TTLCache:
    """Very small in-process TTL cache suitable for single-worker setups."""
    def __init__(self):
        self._store: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        now = time.time()
        with self._lock:
            item = self._store.get(key)
            if not item:
                return None
            value, exp = item
            if exp < now:
                self._store.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: int = 60) -> None:
        exp = time.time() + max(1, int(ttl_seconds))
        with self._lock:
            self._store[key] = (value, exp)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


_cache = TTLCache()
_data_version = 0
_version_lock = threading.Lock()


def cache_get(key: str) -> Optional[Any]:
    return _cache.get(key)


def cache_set(key: str, value: Any, ttl_seconds: int = 60) -> None:
    _cache.set(key, value, ttl_seconds)


def cache_delete(key: str) -> None:
    _cache.delete(key)


def cache_clear() -> None:
    _cache.clear()


def get_data_version() -> int:
    with _version_lock:
        return _data_version


def bump_data_version() -> int:
    """Invalidate every versioned cache entry after a write."""
    global _data_version
    with _version_lock:
        _data_version += 1
        return _data_version


def cached(ttl_seconds: int = 60, key_builder: Optional[Callable] = None):
    """
    Decorator to cache function results.

    Keys include the current data version, so a write anywhere invalidates
    previously cached reads without tracking individual keys.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if key_builder:
                key = key_builder(*args, **kwargs)
            else:
                key_parts = [func.__module__, func.__qualname__, str(get_data_version())]
                key_parts.extend([str(arg) for arg in args])
                key_parts.extend([f"{k}={v}" for k, v in sorted(kwargs.items())])
                key = hashlib.md5(":".join(key_parts).encode()).hexdigest()

            cached_value = cache_get(key)
            if cached_value is not None:
                return cached_value

            result = func(*args, **kwargs)
            cache_set(key, result, ttl_seconds)
            return result
        return wrapper
    return decorator
