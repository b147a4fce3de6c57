"""
FilePath: /lightning_tooling/src/core/cache.py
"""

import logging
import time
from typing import Any, Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)


class _Entry(NamedTuple):
    value: Any
    expires_at: float


class SimpleCache:
    """进程内 TTL 缓存，过期条目在读取时清除"""

    def __init__(self, ttl: int = 300):
        self.ttl = ttl
        self._entries: Dict[str, _Entry] = {}
        logger.debug("SimpleCache initialized with TTL=%d seconds", ttl)

    def set(self, key: str, value: Any):
        expires_at = time.monotonic() + self.ttl
        self._entries[key] = _Entry(value, expires_at)
        logger.debug("Cache set: key=%s, ttl=%d", key, self.ttl)

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache miss: key=%s", key)
            return None

        if time.monotonic() >= entry.expires_at:
            logger.debug("Cache expired: key=%s", key)
            del self._entries[key]
            return None

        logger.debug("Cache hit: key=%s", key)
        return entry.value

    def delete(self, key: str) -> bool:
        """删除单个条目，返回是否存在"""
        return self._entries.pop(key, None) is not None

    def clear(self):
        removed = len(self._entries)
        self._entries.clear()
        logger.info("Cache cleared: removed %d entries", removed)
