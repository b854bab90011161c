"""In-memory response cache for reproducible (seeded) simulation requests."""

import logging
from typing import Any

from cachetools import TTLCache

logger = logging.getLogger(__name__)


class CacheService:
    """Async-facing wrapper over a cachetools TTLCache."""

    def __init__(self, ttl: int = 300, maxsize: int = 256):
        self._memory = TTLCache(maxsize=maxsize, ttl=ttl)

    @classmethod
    async def create(cls, ttl: int = 300, maxsize: int = 256) -> "CacheService":
        logger.info("Cache: in-memory TTLCache (maxsize=%d, ttl=%ds)", maxsize, ttl)
        return cls(ttl=ttl, maxsize=maxsize)

    async def get(self, key: str) -> Any | None:
        """Get cached value by key."""
        return self._memory.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._memory[key] = value

    async def clear_prefix(self, prefix: str) -> None:
        """Delete all keys matching a prefix."""
        keys_to_delete = [k for k in self._memory if k.startswith(prefix)]
        for k in keys_to_delete:
            self._memory.pop(k, None)

    def __len__(self) -> int:
        return len(self._memory)
