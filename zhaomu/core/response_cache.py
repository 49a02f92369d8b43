"""Time-based response cache for upstream proxy payloads.

Weather, calendar and discover payloads change slowly, so each proxy route
keeps its last successful payload for a fixed number of seconds. Only
successful payloads are cached; errors always go back to the upstream.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ResponseCache:
    """Bounded TTL cache keyed by route name and request parameters.

    Example:
        cache = ResponseCache(max_size=64)
        key = cache.generate_key("qweather", {"location": "101010100"})
        cached = cache.get(key)
        if cached is None:
            payload = await fetch()
            cache.set(key, payload, ttl_seconds=600)
    """

    def __init__(self, max_size: int = 64, clock: Callable[[], float] = time.monotonic):
        """Initialize response cache.

        Args:
            max_size: Maximum number of cached payloads (oldest evicted first)
            clock: Monotonic time source, injectable for tests
        """
        self._entries: OrderedDict[str, tuple[dict[str, Any], float]] = OrderedDict()
        self.max_size = max_size
        self._clock = clock
        self.stats = {"hits": 0, "misses": 0, "evictions": 0, "expired": 0}

    def generate_key(self, route_name: str, params: dict[str, Any]) -> str:
        """Generate a cache key from a route name and its parameters."""
        param_str = json.dumps(params, sort_keys=True, ensure_ascii=False)
        # MD5 for speed only; keys need no cryptographic properties.
        param_hash = hashlib.md5(param_str.encode("utf-8")).hexdigest()  # nosec B324
        return f"{route_name}:{param_hash}"

    def get(self, key: str) -> Optional[dict[str, Any]]:
        """Return the cached payload for ``key`` or None if missing/expired."""
        entry = self._entries.get(key)
        if entry is None:
            self.stats["misses"] += 1
            return None

        payload, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.stats["expired"] += 1
            self.stats["misses"] += 1
            logger.debug("Cache entry expired: %s", key)
            return None

        self.stats["hits"] += 1
        logger.debug("Cache hit for key: %s", key)
        return payload

    def set(self, key: str, payload: dict[str, Any], ttl_seconds: float) -> None:
        """Cache ``payload`` under ``key`` for ``ttl_seconds``."""
        if ttl_seconds <= 0:
            return
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
            self.stats["evictions"] += 1
        self._entries[key] = (payload, self._clock() + ttl_seconds)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
