from __future__ import annotations

import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

_MISSING = object()


def make_cache_key(**fields: Any) -> str:
    """Stable key from the request fields that change the answer."""
    return json.dumps(fields, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


class ResponseCache:
    """
    Process-wide memo of generated payloads.

    Entries expire lazily on read; nothing is evicted otherwise. Identical
    requests in flight at the same time may both compute, and the last one
    to finish wins the slot.
    """

    def __init__(self, ttl_seconds: float = 3600, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str, ttl_seconds: Optional[float] = None, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        stored_at, value = entry
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        if self._clock() - stored_at < ttl:
            return value
        return default

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        ttl_seconds: Optional[float] = None,
    ) -> Any:
        cached = self.get(key, ttl_seconds, _MISSING)
        if cached is not _MISSING:
            logger.info("Response cache hit")
            return cached
        # Errors propagate and are not memoized
        value = await compute()
        self.set(key, value)
        return value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
