from .coherence import ALL_POSTS_KEY, CacheCoherence, post_key
from .store import CacheStore, MemoryCacheStore, RedisCacheStore

__all__ = [
    "ALL_POSTS_KEY",
    "CacheCoherence",
    "CacheStore",
    "MemoryCacheStore",
    "RedisCacheStore",
    "post_key",
]
