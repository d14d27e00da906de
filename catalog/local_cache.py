"""
界面侧的读缓存：每个键自带 TTL，只靠过期失效，写操作不会主动清缓存。
"""

import copy
import threading
import time
from typing import Any

_lock = threading.Lock()
_entries: dict[str, tuple[float, Any]] = {}


def read_cache(key: str) -> Any | None:
    with _lock:
        entry = _entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() > expires_at:
            del _entries[key]
            return None
    return copy.deepcopy(value)


def write_cache(key: str, value: Any, ttl_seconds: float) -> None:
    with _lock:
        _entries[key] = (time.monotonic() + ttl_seconds, copy.deepcopy(value))


def clear_cache() -> None:
    with _lock:
        _entries.clear()
