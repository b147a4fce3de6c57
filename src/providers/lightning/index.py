"""
LightningIndex - org 范围的 AuraDefinition 索引

get_bundle_items 需要用索引把本地文件关联到远端 Id。
这里只做透传缓存：结果在 TTL 内复用，invalidate() 后重新查询。
"""

import asyncio
import logging
from typing import TYPE_CHECKING, List, Optional

from src.core.cache import SimpleCache
from src.core.config import settings
from src.schemas.lightning import AuraDefinitionRecord

if TYPE_CHECKING:
    from src.providers.lightning.service import LightningService

logger = logging.getLogger(__name__)

_INDEX_KEY = "lightning_index"


class LightningIndex:
    def __init__(self, service: "LightningService", ttl: Optional[int] = None):
        self.service = service
        self._cache = SimpleCache(
            ttl=ttl if ttl is not None else settings.LIGHTNING_INDEX_TTL
        )
        self._lock = asyncio.Lock()

    async def get_index(self) -> List[AuraDefinitionRecord]:
        """返回 org 内全部 AuraDefinition（缓存未命中时调用 list_all）"""
        cached = self._cache.get(_INDEX_KEY)
        if cached is not None:
            return cached

        async with self._lock:
            # 等锁期间可能已被其他协程填充
            cached = self._cache.get(_INDEX_KEY)
            if cached is not None:
                return cached

            logger.debug("Lightning index cache miss, querying org")
            index = await self.service.list_all()
            self._cache.set(_INDEX_KEY, index)
            logger.info("Lightning index loaded: %d entries", len(index))
            return index

    def invalidate(self) -> None:
        if self._cache.delete(_INDEX_KEY):
            logger.debug("Lightning index invalidated")
