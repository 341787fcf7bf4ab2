"""Process-wide cache of decoded elevation tiles.

Provides keyed lookup with lazy fetching:
- One fetch per key: concurrent requests for a tile in flight wait for it
- LRU eviction to bound memory (tiles are large)
- Short-lived negative entries so failing tiles are not re-fetched on every query
- Thread-safe shared instance (created once, reused by all pipelines)
"""

import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Callable, Iterable, Optional

from cycleslope.constants import TileConfig, WorkerConfig
from cycleslope.core.tile_source import HttpTileSource, TileFetchError, TileSource
from cycleslope.model.tile import ElevationTile, TileKey

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Counters for cache behaviour.

    Attributes:
        hits: Lookups served from cached tiles
        misses: Lookups that started a fetch
        coalesced: Lookups that waited for another caller's fetch
        negative_hits: Lookups answered by a remembered failure
        failures: Fetches that failed
        evictions: Tiles dropped by the LRU bound
    """

    hits: int = 0
    misses: int = 0
    coalesced: int = 0
    negative_hits: int = 0
    failures: int = 0
    evictions: int = 0


class TileCache:
    """Thread-safe LRU cache of ElevationTiles keyed by TileKey.

    Example:
        cache = TileCache.shared()
        tile = cache.get_or_fetch(zoom=12, x=2200, y=1343)
    """

    _shared: Optional["TileCache"] = None
    _shared_lock = threading.Lock()

    def __init__(
        self,
        source: Optional[TileSource] = None,
        max_tiles: int = TileConfig.MAX_CACHED_TILES,
        failure_ttl_s: float = TileConfig.FAILURE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize an empty cache.

        Args:
            source: Where tiles come from (HttpTileSource if not provided)
            max_tiles: LRU bound on cached tiles
            failure_ttl_s: Seconds a failed fetch is remembered; 0 re-attempts on every miss
            clock: Monotonic time source (injectable for tests)
        """
        if max_tiles < 1:
            raise ValueError(f"max_tiles must be at least 1, got {max_tiles}")
        if failure_ttl_s < 0:
            raise ValueError(f"failure_ttl_s must not be negative, got {failure_ttl_s}")
        self._source = source if source is not None else HttpTileSource()
        self.max_tiles = max_tiles
        self.failure_ttl_s = failure_ttl_s
        self._clock = clock
        self._lock = threading.Lock()
        self._tiles: OrderedDict[TileKey, ElevationTile] = OrderedDict()
        self._failures: dict[TileKey, float] = {}  # key -> expiry time
        self._failure_reasons: OrderedDict[TileKey, str] = OrderedDict()  # at most max_tiles keys
        self._in_flight: dict[TileKey, Future] = {}
        self._stats = CacheStats()

    @classmethod
    def shared(cls, source: Optional[TileSource] = None, **kwargs: float) -> "TileCache":
        """Return the process-wide cache, creating it on first call.

        Arguments only take effect on the first call.
        """
        # Fast path: already created
        if cls._shared is not None:
            return cls._shared

        with cls._shared_lock:
            # Double-check after acquiring lock
            if cls._shared is None:
                cls._shared = cls(source=source, **kwargs)
                logger.info(f"Created shared tile cache (max_tiles={cls._shared.max_tiles})")
            return cls._shared

    @classmethod
    def reset_shared(cls) -> None:
        """Drop the process-wide cache (tests and reconfiguration only)."""
        with cls._shared_lock:
            cls._shared = None

    def get_or_fetch(self, zoom: int, x: int, y: int) -> Optional[ElevationTile]:
        """Return the tile for (zoom, x, y), fetching it on a miss.

        Returns:
            ElevationTile, or None if the fetch failed (now or within failure_ttl_s).
        """
        return self.get(TileKey(zoom=zoom, x=x, y=y))

    def get(self, key: TileKey) -> Optional[ElevationTile]:
        """Same as get_or_fetch, addressed by TileKey."""
        with self._lock:
            tile = self._tiles.get(key)
            if tile is not None:
                self._tiles.move_to_end(key)
                self._stats.hits += 1
                return tile

            expires_at = self._failures.get(key)
            if expires_at is not None:
                if self._clock() < expires_at:
                    self._stats.negative_hits += 1
                    return None
                del self._failures[key]

            pending = self._in_flight.get(key)
            if pending is None:
                pending = Future()
                self._in_flight[key] = pending
                self._stats.misses += 1
                is_owner = True
            else:
                self._stats.coalesced += 1
                is_owner = False

        if not is_owner:
            return pending.result()

        tile: Optional[ElevationTile] = None
        reason = "fetch did not complete"
        try:
            tile, reason = self._load(key)
        finally:
            self._store(key, tile, reason)
            pending.set_result(tile)
        return tile

    def _load(self, key: TileKey) -> tuple[Optional[ElevationTile], str]:
        """Run one fetch through the source. Never raises.

        Returns:
            (tile, "") on success, (None, reason) on failure.
        """
        start_time = time.time()
        try:
            tile = self._source.load(key)
        except TileFetchError as e:
            logger.warning(f"Elevation tile {key} unavailable: {e.reason}")
            return None, e.reason
        except Exception as e:
            logger.exception(f"Unexpected error loading elevation tile {key}")
            return None, f"{type(e).__name__}: {e}"

        elapsed = time.time() - start_time
        logger.debug(f"Loaded tile {key} in {elapsed:.2f}s ({tile.width}x{tile.height})")
        return tile, ""

    def _store(self, key: TileKey, tile: Optional[ElevationTile], reason: str) -> None:
        with self._lock:
            del self._in_flight[key]
            if tile is None:
                self._stats.failures += 1
                self._remember_failure(key, reason)
                return

            self._failure_reasons.pop(key, None)
            self._tiles[key] = tile
            self._tiles.move_to_end(key)
            while len(self._tiles) > self.max_tiles:
                evicted, _ = self._tiles.popitem(last=False)
                self._stats.evictions += 1
                logger.debug(f"Evicted tile {evicted}")

    def _remember_failure(self, key: TileKey, reason: str) -> None:
        """Record a failed fetch. Caller holds the lock."""
        now = self._clock()
        expired = [k for k, expires_at in self._failures.items() if expires_at <= now]
        for k in expired:
            del self._failures[k]
        if self.failure_ttl_s > 0:
            self._failures[key] = now + self.failure_ttl_s

        self._failure_reasons[key] = reason
        self._failure_reasons.move_to_end(key)
        while len(self._failure_reasons) > self.max_tiles:
            self._failure_reasons.popitem(last=False)

    def last_failure(self, key: TileKey) -> Optional[str]:
        """Reason of the most recent failed fetch for a key, if any."""
        with self._lock:
            return self._failure_reasons.get(key)

    def prefetch(self, keys: Iterable[TileKey], max_workers: int = WorkerConfig.MAX_WORKERS) -> int:
        """Warm the cache for a set of keys concurrently.

        Returns:
            Number of keys that ended up with a cached tile.
        """
        unique_keys = list(dict.fromkeys(keys))
        if not unique_keys:
            return 0
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            tiles = list(executor.map(self.get, unique_keys))
        loaded = sum(1 for t in tiles if t is not None)
        logger.info(f"Prefetched {loaded}/{len(unique_keys)} elevation tiles")
        return loaded

    def stats(self) -> dict[str, int]:
        """Snapshot of cache counters plus current size and failure bookkeeping."""
        with self._lock:
            return {
                **asdict(self._stats),
                "size": len(self._tiles),
                "negative_entries": len(self._failures),
                "remembered_failures": len(self._failure_reasons),
            }

    def clear(self) -> None:
        """Drop all tiles and remembered failures."""
        with self._lock:
            self._tiles.clear()
            self._failures.clear()
            self._failure_reasons.clear()

    def __contains__(self, key: TileKey) -> bool:
        with self._lock:
            return key in self._tiles

    def __len__(self) -> int:
        with self._lock:
            return len(self._tiles)
