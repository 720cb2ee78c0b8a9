"""In-memory result cache with per-entry expiry"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple
import copy
import asyncio
import logging
import time

from .keys import make_key

logger = logging.getLogger(__name__)


@dataclass
class CacheConfig:
    """Cache configuration"""
    default_ttl_seconds: float = 300.0
    stale_factor: float = 4.0  # Sweep drops entries older than stale_factor * max TTL
    sweep_interval_seconds: float = 60.0
    max_entries: int = 10000


@dataclass
class CacheEntry:
    """A cached tool result"""
    key: str
    tool_id: str
    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResultCache:
    """
    Key/value store of recent tool results.

    Reads never block and never return an entry past its expiry; expired
    entries are removed when read. ``sweep`` bounds memory by removing
    entries that were never read back. Values are copied in and out, so
    callers cannot mutate a cached result.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or CacheConfig()
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._max_ttl = self.config.default_ttl_seconds

        self.hits = 0
        self.misses = 0
        self.expirations = 0
        self.evictions = 0

    def get(self, tool_id: str, params: Optional[Dict[str, Any]]) -> Tuple[Any, bool]:
        """Return ``(value, True)`` for an unexpired entry, else ``(None, False)``"""
        key = make_key(tool_id, params)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None, False

        if entry.is_expired(self.clock()):
            # Only drop the entry we looked at; a concurrent put may have replaced it
            if self._entries.get(key) is entry:
                del self._entries[key]
            self.expirations += 1
            self.misses += 1
            return None, False

        self.hits += 1
        logger.debug(f"Cache hit for {tool_id}")
        return copy.deepcopy(entry.value), True

    def put(
        self,
        tool_id: str,
        params: Optional[Dict[str, Any]],
        value: Any,
        ttl: Optional[float] = None,
    ):
        """Store or overwrite an entry"""
        ttl = self.config.default_ttl_seconds if ttl is None else ttl
        if ttl <= 0:
            return

        now = self.clock()
        key = make_key(tool_id, params)
        self._entries[key] = CacheEntry(
            key=key,
            tool_id=tool_id,
            value=copy.deepcopy(value),
            created_at=now,
            expires_at=now + ttl,
        )
        self._max_ttl = max(self._max_ttl, ttl)

        if len(self._entries) > self.config.max_entries:
            self._evict_oldest(len(self._entries) - self.config.max_entries)

    def invalidate(self, tool_id: str) -> int:
        """Remove every entry for a tool"""
        keys = [k for k, e in self._entries.items() if e.tool_id == tool_id]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self, pattern: Optional[str] = None) -> int:
        """Remove all entries, or only those whose key contains ``pattern``"""
        if pattern is None:
            count = len(self._entries)
            self._entries.clear()
            return count

        keys = [k for k in self._entries if pattern in k]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def sweep(self) -> int:
        """Remove entries older than ``stale_factor`` times the largest TTL seen"""
        horizon = self.config.stale_factor * self._max_ttl
        now = self.clock()
        stale = [k for k, e in self._entries.items() if now - e.created_at > horizon]
        for key in stale:
            del self._entries[key]
        if stale:
            self.evictions += len(stale)
            logger.debug(f"Cache sweep removed {len(stale)} stale entries")
        return len(stale)

    def _evict_oldest(self, count: int):
        oldest = sorted(self._entries.values(), key=lambda e: e.created_at)[:count]
        for entry in oldest:
            del self._entries[entry.key]
        self.evictions += len(oldest)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def get_status(self) -> Dict:
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hit_rate, 4),
            "expirations": self.expirations,
            "evictions": self.evictions,
            "max_ttl_seconds": self._max_ttl,
        }


class CacheSweeper:
    """Background loop that calls ``ResultCache.sweep`` periodically"""

    def __init__(self, cache: ResultCache, interval_seconds: Optional[float] = None):
        self.cache = cache
        self.interval_seconds = interval_seconds or cache.config.sweep_interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="cache-sweeper")
        logger.info(f"Cache sweeper started (every {self.interval_seconds}s)")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Cache sweeper stopped")

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.cache.sweep()
