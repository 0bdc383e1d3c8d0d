"""
Static region table: the partition of the national dex id space by game region.

Regions are ordered by generation and never overlap. Lookups return None for
ids or region names that fall outside the table.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

logger = logging.getLogger("pokedex.regions")


@dataclass(frozen=True)
class Region:
    """
    One game region and the inclusive id range of the Pokemon it introduced.

    Attributes:
        id: Lowercase identifier (e.g. 'kanto').
        name: Display name.
        start_id: First national dex number in the region.
        end_id: Last national dex number in the region.
        generation: Generation that introduced the region.
        description: Short blurb shown by the UI.
    """

    id: str
    name: str
    start_id: int
    end_id: int
    generation: int
    description: str = ""

    @property
    def count(self) -> int:
        return self.end_id - self.start_id + 1

    @property
    def offset(self) -> int:
        """Zero-based offset used by the list endpoint."""
        return self.start_id - 1

    def contains(self, pokemon_id: int) -> bool:
        return self.start_id <= pokemon_id <= self.end_id


POKEMON_REGIONS: Tuple[Region, ...] = (
    Region("kanto", "Kanto", 1, 151, 1, "The original region where it all began"),
    Region("johto", "Johto", 152, 251, 2, "Land of tradition and legendary beasts"),
    Region("hoenn", "Hoenn", 252, 386, 3, "A region of land and sea"),
    Region("sinnoh", "Sinnoh", 387, 493, 4, "The land of myths and legends"),
    Region("unova", "Unova", 494, 649, 5, "A region far from others"),
    Region("kalos", "Kalos", 650, 721, 6, "The region of beauty and art"),
    Region("alola", "Alola", 722, 809, 7, "Tropical islands with unique forms"),
    Region("galar", "Galar", 810, 898, 8, "Industrial region with Dynamax"),
    Region("paldea", "Paldea", 899, 1025, 9, "Open world of adventure"),
)


def get_region_by_pokemon_id(pokemon_id: int) -> Optional[Region]:
    """Region whose range contains the id, or None (ids < 1 never match)."""
    for region in POKEMON_REGIONS:
        if region.contains(pokemon_id):
            return region
    return None


def get_region_by_id(region_id: str) -> Optional[Region]:
    region_id = region_id.lower().strip()
    for region in POKEMON_REGIONS:
        if region.id == region_id:
            return region
    return None


# The UI asks for "region info" by id; same lookup.
get_region_info = get_region_by_id


def get_region_pokemon_count(region_id: str) -> int:
    region = get_region_by_id(region_id)
    return region.count if region else 0


def get_region_offset(region_id: str) -> int:
    region = get_region_by_id(region_id)
    return region.offset if region else 0


def validate_region_table(regions: Sequence[Region] = POKEMON_REGIONS) -> None:
    """
    Check that the table is a proper partition.

    Raises:
        ValueError: If a region has an empty or non-positive range, regions are
            out of generation order, or consecutive ranges overlap.
    """
    for region in regions:
        if region.start_id < 1 or region.end_id < region.start_id:
            raise ValueError(f"Region '{region.id}' has an invalid id range")

    for previous, current in zip(regions, regions[1:]):
        if current.generation <= previous.generation:
            raise ValueError(
                f"Region '{current.id}' is out of generation order after '{previous.id}'"
            )
        if previous.end_id >= current.start_id:
            raise ValueError(
                f"Regions '{previous.id}' and '{current.id}' overlap "
                f"({previous.end_id} >= {current.start_id})"
            )
