"""
In-memory, time-expiring caches for API data.

Each entity kind (records, list pages, species, abilities, moves, items,
evolution chains, region results) gets its own MemoryCache so key spaces
never collide. Expiry is checked lazily on access; there is no background
sweep and no capacity bound.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

from config.settings import ApiSettings, validate_settings
from pokedex.constants import (
    CACHE_ABILITY,
    CACHE_EVOLUTION,
    CACHE_ITEM,
    CACHE_MOVE,
    CACHE_POKEMON,
    CACHE_POKEMON_LIST,
    CACHE_REGION,
    CACHE_SPECIES,
    LOG_KEY_LENGTH,
)

logger = logging.getLogger("pokedex.cache")

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    inserted_at: float  # Clock reading in seconds


class MemoryCache(Generic[T]):
    """
    Generic key -> value store with a fixed per-entry TTL.

    An entry is visible to `get`/`has` only while
    `now - inserted_at < ttl`; the access that discovers an expired entry
    evicts it. `size()` counts stored entries, including expired ones that
    nobody has looked at yet.
    """

    def __init__(
        self,
        ttl_minutes: float,
        name: str = "cache",
        debug: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            ttl_minutes: Lifetime of every entry, in minutes.
            name: Label used in log records.
            debug: Emit a debug record for every set/hit/miss/expiry.
            clock: Monotonic time source in seconds (injectable for tests).
        """
        if ttl_minutes <= 0:
            raise ValueError("ttl_minutes must be positive")

        self.name = name
        self.ttl = ttl_minutes * 60
        self.debug = debug
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}

    def _log(self, event: str, key: str) -> None:
        if self.debug:
            logger.debug(
                f"Cache {event}",
                extra={"cache": self.name, "cache_key": key[:LOG_KEY_LENGTH]},
            )

    def _live_entry(self, key: str) -> Optional[CacheEntry[T]]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry.inserted_at >= self.ttl:
            del self._entries[key]
            self._log("EXPIRED", key)
            return None

        return entry

    def set(self, key: str, value: T) -> None:
        """Store a value, overwriting any previous entry and restarting its TTL."""
        self._entries[key] = CacheEntry(value, self._clock())
        self._log("SET", key)

    def get(self, key: str) -> Optional[T]:
        """Return the cached value, or None if missing or expired."""
        entry = self._live_entry(key)
        if entry is None:
            self._log("MISS", key)
            return None

        self._log("HIT", key)
        return entry.value

    def has(self, key: str) -> bool:
        """Check for a live entry without returning it."""
        return self._live_entry(key) is not None

    def clear(self) -> None:
        """Drop all entries regardless of TTL."""
        count = len(self._entries)
        self._entries.clear()
        if self.debug:
            logger.debug(
                f"Cache CLEARED: {count} items removed", extra={"cache": self.name}
            )

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: str) -> bool:
        return self.has(key)


class CacheSet:
    """
    The per-entity cache instances used by the client and region fetcher.

    Built once at application start and passed to every component that
    needs it. Tests construct a fresh CacheSet per test.
    """

    def __init__(
        self,
        ttl_minutes: float,
        debug: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        def make(name: str) -> MemoryCache:
            return MemoryCache(ttl_minutes, name=name, debug=debug, clock=clock)

        self.pokemon = make(CACHE_POKEMON)
        self.pokemon_list = make(CACHE_POKEMON_LIST)
        self.species = make(CACHE_SPECIES)
        self.ability = make(CACHE_ABILITY)
        self.move = make(CACHE_MOVE)
        self.item = make(CACHE_ITEM)
        self.evolution = make(CACHE_EVOLUTION)
        self.region = make(CACHE_REGION)

    @classmethod
    def from_settings(
        cls, settings: ApiSettings, clock: Callable[[], float] = time.monotonic
    ) -> "CacheSet":
        validate_settings(settings)
        return cls(
            settings.memory_cache_ttl_minutes,
            debug=settings.debug_api_calls,
            clock=clock,
        )

    def all(self) -> Dict[str, MemoryCache]:
        return {
            cache.name: cache
            for cache in (
                self.pokemon,
                self.pokemon_list,
                self.species,
                self.ability,
                self.move,
                self.item,
                self.evolution,
                self.region,
            )
        }

    def clear_all(self) -> None:
        for cache in self.all().values():
            cache.clear()
        logger.info("All memory caches cleared")

    def sizes(self) -> Dict[str, int]:
        return {name: cache.size() for name, cache in self.all().items()}
