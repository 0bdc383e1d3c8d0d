"""
Type definitions for API responses and the normalized domain records.

Wire payloads are described with TypedDicts (only the fields the data layer
reads). The domain Pokemon is an immutable dataclass built once per fetch
with `Pokemon.from_api`.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, TypedDict


class NamedResource(TypedDict):
    """A `{name, url}` reference as embedded throughout PokeAPI payloads."""

    name: str
    url: str


# List entries have the same shape; the url ends in the numeric id.
ListItem = NamedResource


class ListResponse(TypedDict, total=False):
    """
    One page of the paginated `/pokemon` directory.

    Attributes:
        count: Total number of entries available on the server.
        next: URL of the next page, if any.
        previous: URL of the previous page, if any.
        results: The `{name, url}` entries for this page.
    """

    count: int
    next: Optional[str]
    previous: Optional[str]
    results: List[ListItem]


class PokemonPayload(TypedDict, total=False):
    """Subset of the `/pokemon/{id}` response used by the data layer."""

    id: int
    name: str
    base_experience: Optional[int]
    height: int
    weight: int
    sprites: Dict[str, Any]
    types: List[Dict[str, Any]]
    stats: List[Dict[str, Any]]
    abilities: List[Dict[str, Any]]
    moves: List[Dict[str, Any]]


class SpeciesPayload(TypedDict, total=False):
    """Subset of the `/pokemon-species/{name}` response."""

    id: int
    name: str
    flavor_text_entries: List[Dict[str, Any]]
    evolution_chain: Dict[str, str]
    generation: NamedResource


class FetchStats(TypedDict):
    """
    Request and cache counters for the API client.

    Attributes:
        requests: Network fetches started (cache misses that went to the API).
        failures: Fetches that ended in a None result.
        cache_hits: Lookups answered from memory.
        cache_misses: Lookups that had to go to the network.
        hit_rate: Percentage string (e.g., '85.5%').
        pending_requests: Deduplicated fetches currently in flight.
        cache_sizes: Entry count per cache instance.
    """

    requests: int
    failures: int
    cache_hits: int
    cache_misses: int
    hit_rate: str
    pending_requests: int
    cache_sizes: Dict[str, int]


@dataclass(frozen=True)
class Stat:
    name: str
    base_stat: int
    effort: int = 0


@dataclass(frozen=True)
class AbilityRef:
    name: str
    url: str
    is_hidden: bool = False


@dataclass(frozen=True)
class MoveLearn:
    """How a move is learned; `level` is None unless learned by level-up."""

    name: str
    url: str
    learn_method: str
    level: Optional[int] = None


@dataclass(frozen=True)
class Pokemon:
    """
    Normalized creature record used throughout the application.

    Identity is the numeric `id`. `types` is ordered by slot, so the first
    entry is the primary type.
    """

    id: int
    name: str
    sprite: Optional[str]
    artwork: Optional[str]
    types: Tuple[str, ...]
    height: int
    weight: int
    stats: Tuple[Stat, ...]
    abilities: Tuple[AbilityRef, ...]
    moves: Tuple[MoveLearn, ...]
    base_experience: Optional[int] = None

    @property
    def primary_type(self) -> Optional[str]:
        return self.types[0] if self.types else None

    @property
    def image(self) -> Optional[str]:
        """Official artwork when available, otherwise the default sprite."""
        return self.artwork or self.sprite

    @classmethod
    def from_api(cls, data: PokemonPayload) -> "Pokemon":
        """
        Convert a `/pokemon/{id}` payload into a domain record.

        Args:
            data: Decoded JSON payload.

        Returns:
            The normalized Pokemon.

        Raises:
            ValueError: If the payload lacks a usable id or name.
            KeyError: If a nested entry is missing a required field.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

        pokemon_id = data.get("id")
        name = data.get("name")
        if not isinstance(pokemon_id, int) or pokemon_id < 1 or not name:
            raise ValueError(f"Payload has no valid id/name: id={pokemon_id!r}")

        sprites = data.get("sprites") or {}
        artwork = ((sprites.get("other") or {}).get("official-artwork") or {}).get(
            "front_default"
        )

        types = tuple(
            entry["type"]["name"]
            for entry in sorted(data.get("types", []), key=lambda t: t.get("slot", 0))
        )

        stats = tuple(
            Stat(
                name=entry["stat"]["name"],
                base_stat=entry["base_stat"],
                effort=entry.get("effort", 0),
            )
            for entry in data.get("stats", [])
        )

        abilities = tuple(
            AbilityRef(
                name=entry["ability"]["name"],
                url=entry["ability"]["url"],
                is_hidden=entry.get("is_hidden", False),
            )
            for entry in data.get("abilities", [])
        )

        moves = []
        for entry in data.get("moves", []):
            details = entry.get("version_group_details") or []
            if details:
                first = details[0]
                method = first["move_learn_method"]["name"]
                level = first.get("level_learned_at") or None
            else:
                method, level = "unknown", None
            moves.append(
                MoveLearn(
                    name=entry["move"]["name"],
                    url=entry["move"]["url"],
                    learn_method=method,
                    level=level,
                )
            )

        return cls(
            id=pokemon_id,
            name=name,
            sprite=sprites.get("front_default"),
            artwork=artwork,
            types=types,
            height=data.get("height", 0),
            weight=data.get("weight", 0),
            stats=stats,
            abilities=abilities,
            moves=tuple(moves),
            base_experience=data.get("base_experience"),
        )


def extract_id_from_url(url: str) -> int:
    """
    Parse the numeric id from a resource URL.

    The id is the last non-empty path segment, so both
    `.../pokemon/42/` and `.../pokemon/42` give 42.

    Raises:
        ValueError: If the segment is not an integer.
    """
    segments = [part for part in url.split("/") if part]
    if not segments:
        raise ValueError(f"No path segments in URL: {url!r}")
    return int(segments[-1])
