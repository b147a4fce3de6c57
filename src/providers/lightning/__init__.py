from .index import LightningIndex
from .service import LightningService, find_in_index

__all__ = [
    "LightningIndex",
    "LightningService",
    "find_in_index",
]
