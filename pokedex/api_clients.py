"""
API Client module for fetching Pokemon data from PokeAPI.

This module resolves single records, directory pages and the secondary
resources (species, abilities, moves, items, evolution chains). Every fetch
follows the same shape: memory cache lookup, request deduplication, then a
resilient request through the RequestExecutor. Failures never propagate;
they are logged, counted, and turned into a None result.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config.settings import ApiSettings, validate_settings
from pokedex.api_models import (
    FetchStats,
    ListItem,
    ListResponse,
    Pokemon,
    SpeciesPayload,
)
from pokedex.cache import CacheSet, MemoryCache
from pokedex.constants import (
    DEFAULT_LIST_LIMIT,
    LOG_KEY_LENGTH,
    POKEMON_CACHE_KEY,
    POKEMON_ENDPOINT,
    POKEMON_LIST_CACHE_KEY,
    SPECIES_CACHE_KEY,
    SPECIES_ENDPOINT,
)
from pokedex.request_executor import RequestExecutor

logger = logging.getLogger("pokedex.api")


class PokeAPIClient:
    """
    Cached, never-raising client for PokeAPI resources.

    Key Features:
    - **Memory Caching**: Each entity kind has its own TTL cache from the
      injected CacheSet; a cached value is returned without a network call.
    - **Request Deduplication**: Simultaneous requests for the same key are
      merged into a single API call.
    - **Null-on-failure**: Network, status and decode failures are logged and
      returned as None. The last error per key is kept for inspection.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        caches: CacheSet,
        settings: ApiSettings,
    ):
        self.executor = executor
        self.caches = caches
        self.settings = validate_settings(settings)

        # Statistics
        self.cache_hits = 0
        self.cache_misses = 0
        self.requests = 0
        self.failures = 0
        self._last_errors: Dict[str, Exception] = {}

        # Tracks in-flight requests to prevent duplicate API calls
        self._pending_requests: Dict[str, asyncio.Task] = {}
        self._request_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = defaultdict(int)

    def _url(self, *parts: Any) -> str:
        return "/".join([self.settings.api_root, *(str(p) for p in parts)])

    def _acquire_lock(self, key: str) -> asyncio.Lock:
        self._lock_users[key] += 1
        return self._request_locks.setdefault(key, asyncio.Lock())

    def _release_lock(self, key: str) -> None:
        # Dropped only once no coroutine can still be waiting on it
        self._lock_users[key] -= 1
        if self._lock_users[key] == 0:
            del self._lock_users[key]
            del self._request_locks[key]

    async def _deduplicate_request(
        self, key: str, fetch_func: Callable[..., Awaitable[Any]], *args, **kwargs
    ) -> Optional[Any]:
        """
        Deduplicate concurrent requests for the same data.

        The lock is held only while creating or retrieving the pending task,
        never while awaiting the network result, so unrelated keys are never
        serialized. A key's lock lives only as long as some caller uses it.

        Args:
            key: Unique key identifying this request resource.
            fetch_func: Async function to call if no request is pending.
            *args: Arguments for fetch_func.
            **kwargs: Keyword arguments for fetch_func.

        Returns:
            Result from fetch_func or shared result from a pending request.
        """
        created = False
        lock = self._acquire_lock(key)

        try:
            async with lock:
                if key in self._pending_requests:
                    task = self._pending_requests[key]
                    logger.debug(
                        "Request deduplication: Joining existing request",
                        extra={"key": key[:LOG_KEY_LENGTH]},
                    )
                else:
                    task = asyncio.create_task(fetch_func(*args, **kwargs))
                    self._pending_requests[key] = task
                    created = True

            try:
                return await task
            finally:
                if created:
                    async with lock:
                        if self._pending_requests.get(key) is task:
                            del self._pending_requests[key]

                    logger.debug(
                        "Request deduplication: Cleaned up request",
                        extra={"key": key[:LOG_KEY_LENGTH]},
                    )
        finally:
            self._release_lock(key)

    async def _cached_fetch(
        self,
        cache: MemoryCache,
        key: str,
        url: str,
        convert: Callable[[Any], Any] = lambda data: data,
        label: str = "resource",
    ) -> Optional[Any]:
        """
        Shared cache -> dedup -> executor pipeline.

        Args:
            cache: Cache instance for this entity kind.
            key: Cache key (also used as the deduplication key).
            url: URL to fetch on a cache miss.
            convert: Maps the decoded payload to the cached value; may raise.
            label: Human readable name for log records.

        Returns:
            The cached or freshly fetched value, or None on any failure.
        """
        cached = cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            return cached

        self.cache_misses += 1

        async def _fetch() -> Optional[Any]:
            self.requests += 1
            try:
                data = await self.executor.execute(url)
                value = convert(data)
            except Exception as e:
                self.failures += 1
                self._last_errors[key] = e
                logger.error(
                    f"Error fetching {label}: {e}",
                    extra={"cache_key": key[:LOG_KEY_LENGTH], "url": url},
                    exc_info=self.settings.debug_api_calls,
                )
                return None

            self._last_errors.pop(key, None)
            cache.set(key, value)
            return value

        return await self._deduplicate_request(f"{cache.name}:{key}", _fetch)

    async def fetch_pokemon(self, pokemon_id: int) -> Optional[Pokemon]:
        """
        Fetch one Pokemon by numeric id.

        Args:
            pokemon_id: National dex number (1-based).

        Returns:
            The normalized Pokemon, or None on any failure.
        """
        return await self._cached_fetch(
            self.caches.pokemon,
            POKEMON_CACHE_KEY.format(id=pokemon_id),
            self._url(POKEMON_ENDPOINT, pokemon_id),
            convert=Pokemon.from_api,
            label=f"Pokemon {pokemon_id}",
        )

    async def fetch_pokemon_list(
        self, limit: int, offset: int
    ) -> Optional[ListResponse]:
        """
        Fetch one page of the `/pokemon` directory listing.

        One network call per distinct (limit, offset) within the cache TTL.

        Args:
            limit: Page size.
            offset: Zero-based offset into the directory.

        Returns:
            The list response, or None on any failure.
        """

        def _check(data: Any) -> ListResponse:
            if not isinstance(data, dict) or not isinstance(data.get("results"), list):
                raise ValueError("List response has no 'results' array")
            logger.info(f"📋 Received {len(data['results'])} Pokemon in list")
            return data

        return await self._cached_fetch(
            self.caches.pokemon_list,
            POKEMON_LIST_CACHE_KEY.format(limit=limit, offset=offset),
            f"{self._url(POKEMON_ENDPOINT)}?limit={limit}&offset={offset}",
            convert=_check,
            label=f"Pokemon list (limit: {limit}, offset: {offset})",
        )

    async def list_pokemon(
        self, limit: int = DEFAULT_LIST_LIMIT, offset: int = 0
    ) -> List[ListItem]:
        """Directory entries only; an empty list when the page cannot be fetched."""
        page = await self.fetch_pokemon_list(limit, offset)
        return list(page.get("results", [])) if page else []

    async def fetch_pokemon_batch(self, start_id: int, end_id: int) -> List[Pokemon]:
        """
        Fetch every id in the inclusive range concurrently, without throttling.

        Failed ids are dropped. Prefer RegionFetcher.fetch_range for large
        ranges.
        """
        results = await asyncio.gather(
            *(self.fetch_pokemon(i) for i in range(start_id, end_id + 1))
        )
        return [pokemon for pokemon in results if pokemon is not None]

    async def fetch_species(self, name: str) -> Optional[SpeciesPayload]:
        """Fetch species data (flavor text, evolution chain reference) by name."""
        name = name.lower().strip()
        return await self._cached_fetch(
            self.caches.species,
            SPECIES_CACHE_KEY.format(name=name),
            self._url(SPECIES_ENDPOINT, name),
            label=f"species {name}",
        )

    async def fetch_ability(self, url: str) -> Optional[Dict[str, Any]]:
        """Fetch an ability from the opaque URL embedded in a Pokemon record."""
        return await self._cached_fetch(
            self.caches.ability, url, url, label="ability"
        )

    async def fetch_move(self, url: str) -> Optional[Dict[str, Any]]:
        """Fetch a move from the opaque URL embedded in a Pokemon record."""
        return await self._cached_fetch(self.caches.move, url, url, label="move")

    async def fetch_item(self, url: str) -> Optional[Dict[str, Any]]:
        """Fetch an item from the opaque URL embedded in an evolution chain."""
        return await self._cached_fetch(self.caches.item, url, url, label="item")

    async def fetch_evolution_chain(self, url: str) -> Optional[Dict[str, Any]]:
        """Fetch an evolution chain from the URL given by a species payload."""
        return await self._cached_fetch(
            self.caches.evolution, url, url, label="evolution chain"
        )

    def last_error(self, key: str) -> Optional[Exception]:
        """
        The error that made the most recent fetch for `key` return None.

        Cleared again once the same key is fetched successfully.
        """
        return self._last_errors.get(key)

    def clear_cache(self) -> None:
        """Clear every memory cache and reset the counters."""
        self.caches.clear_all()
        self.cache_hits = 0
        self.cache_misses = 0
        self.requests = 0
        self.failures = 0
        self._last_errors.clear()
        logger.info("Cache cleared")

    def get_fetch_stats(self) -> FetchStats:
        """
        Get request and cache statistics.

        Returns:
            FetchStats object containing counters and hit rate.
        """
        total_lookups = self.cache_hits + self.cache_misses
        hit_rate = (self.cache_hits / total_lookups * 100) if total_lookups > 0 else 0

        return {
            "requests": self.requests,
            "failures": self.failures,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "hit_rate": f"{hit_rate:.1f}%",
            "pending_requests": len(self._pending_requests),
            "cache_sizes": self.caches.sizes(),
        }
