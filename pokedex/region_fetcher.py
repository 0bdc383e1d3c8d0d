"""
Bulk fetching of every Pokemon in an id range (usually a whole region).

The range is resolved in two mutually exclusive ways:

1. **List-driven** (primary): one call to the directory endpoint returns the
   `{name, url}` entries for the range; the ids parsed from those URLs are
   resolved batch by batch.
2. **Id-driven** (fallback): used only when the directory call fails or comes
   back empty; the raw id range is resolved batch by batch.

Within a batch every record is requested concurrently; batches run strictly
one after another with a fixed pause in between to stay polite to the API.
Records that cannot be fetched are dropped, so the result may be shorter
than the range. The result is always sorted by id.
"""

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Union

from config.settings import ApiSettings, validate_settings
from pokedex.api_clients import PokeAPIClient
from pokedex.api_models import ListItem, Pokemon, extract_id_from_url
from pokedex.cache import CacheSet
from pokedex.constants import REGION_CACHE_KEY
from pokedex.progress import ProgressCallback
from pokedex.regions import Region, get_region_by_id

logger = logging.getLogger("pokedex.fetcher")


def _chunks(items: Sequence, size: int) -> Iterable[Sequence]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


class RegionFetcher:
    """
    Orchestrates batched, rate-limited retrieval of a Pokemon id range.

    `fetch_range` never raises under normal operation: failures degrade to a
    shorter (possibly empty) result and a final progress value below the
    total. Once started, a run always completes; there is no cancellation.
    """

    def __init__(self, client: PokeAPIClient, caches: CacheSet, settings: ApiSettings):
        self.client = client
        self.caches = caches
        self.settings = validate_settings(settings)

    async def fetch_region(
        self,
        region: Union[Region, str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[Pokemon]:
        """
        Fetch all Pokemon of a region.

        Args:
            region: A Region or a region id such as 'kanto'.
            on_progress: Optional (current, total) callback.

        Raises:
            ValueError: If a region id is unknown.
        """
        if isinstance(region, str):
            resolved = get_region_by_id(region)
            if resolved is None:
                raise ValueError(f"Unknown region: {region}")
            region = resolved

        logger.info(
            f"Loading region {region.name}",
            extra={"region": region.id, "start_id": region.start_id, "end_id": region.end_id},
        )
        return await self.fetch_range(region.start_id, region.end_id, on_progress)

    def cached_range(self, start_id: int, end_id: int) -> Optional[List[Pokemon]]:
        """Result of an earlier fetch_range for the same bounds, if still cached."""
        return self.caches.region.get(
            REGION_CACHE_KEY.format(start_id=start_id, end_id=end_id)
        )

    async def fetch_range(
        self,
        start_id: int,
        end_id: int,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[Pokemon]:
        """
        Fetch every Pokemon with `start_id <= id <= end_id`.

        Args:
            start_id: First id (1-based, inclusive).
            end_id: Last id (inclusive).
            on_progress: Optional callback receiving (current, total) after
                each batch; `current` never decreases within a run.

        Returns:
            The fetched Pokemon sorted ascending by id.
        """
        if start_id < 1 or end_id < start_id:
            logger.warning(
                "Empty or invalid id range requested",
                extra={"start_id": start_id, "end_id": end_id},
            )
            return []

        total = end_id - start_id + 1
        logger.info(f"🚀 Starting region fetch: {start_id}-{end_id} ({total} Pokemon)")

        list_data = await self.client.fetch_pokemon_list(total, start_id - 1)
        items = list_data.get("results") if list_data else None

        if items:
            logger.info(f"📋 Successfully fetched list with {len(items)} Pokemon")
            collected = await self._fetch_from_list(items, total, on_progress)
        else:
            logger.warning(
                "❌ List API failed, falling back to individual id fetching",
                extra={"start_id": start_id, "end_id": end_id},
            )
            collected = await self._fetch_by_ids(start_id, end_id, total, on_progress)

        result = sorted(collected, key=lambda pokemon: pokemon.id)
        logger.info(f"🏁 Final result: {len(result)}/{total} Pokemon sorted by id")

        self.caches.region.set(
            REGION_CACHE_KEY.format(start_id=start_id, end_id=end_id), result
        )
        return result

    async def _fetch_from_list(
        self,
        items: List[ListItem],
        total: int,
        on_progress: Optional[ProgressCallback],
    ) -> List[Pokemon]:
        """List-driven path: resolve the ids parsed from the directory URLs."""
        if on_progress:
            on_progress(0, total)

        batches = list(_chunks(items, self.settings.batch_size))
        collected: List[Pokemon] = []

        for index, batch in enumerate(batches, start=1):
            results = await asyncio.gather(*(self._fetch_list_item(i) for i in batch))
            valid = [pokemon for pokemon in results if pokemon is not None]
            collected.extend(valid)

            logger.debug(
                f"✅ List batch {index}/{len(batches)}: {len(valid)}/{len(batch)} Pokemon loaded"
            )
            if on_progress:
                on_progress(len(collected), total)

            if index < len(batches):
                await self._pause()

        return collected

    async def _fetch_by_ids(
        self,
        start_id: int,
        end_id: int,
        total: int,
        on_progress: Optional[ProgressCallback],
    ) -> List[Pokemon]:
        """Id-driven path: resolve the raw id range."""
        id_batches = list(_chunks(range(start_id, end_id + 1), self.settings.batch_size))
        collected: List[Pokemon] = []

        for index, batch in enumerate(id_batches, start=1):
            results = await asyncio.gather(*(self.client.fetch_pokemon(i) for i in batch))
            valid = [pokemon for pokemon in results if pokemon is not None]
            collected.extend(valid)

            logger.debug(
                f"✅ Fallback batch {batch[0]}-{batch[-1]}: {len(valid)} Pokemon loaded"
            )
            if on_progress:
                on_progress(len(collected), total)

            if index < len(id_batches):
                await self._pause()

        return collected

    async def _fetch_list_item(self, item: ListItem) -> Optional[Pokemon]:
        try:
            pokemon_id = extract_id_from_url(item["url"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping list entry without a usable id: {e}", extra={"item": item})
            return None
        return await self.client.fetch_pokemon(pokemon_id)

    async def _pause(self) -> None:
        if self.settings.delay_ms > 0:
            await asyncio.sleep(self.settings.delay_ms / 1000)
