"""Result caching"""
from .keys import canonicalize, make_key
from .store import CacheConfig, CacheEntry, ResultCache, CacheSweeper

__all__ = [
    "canonicalize",
    "make_key",
    "CacheConfig",
    "CacheEntry",
    "ResultCache",
    "CacheSweeper",
]
