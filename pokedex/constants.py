"""
This module contains static constant definitions used throughout the data layer,
including:
- REST endpoint paths relative to the API base URL
- Cache key formats for each entity kind
- Names of the per-entity cache instances
"""

# Endpoint paths
POKEMON_ENDPOINT = "pokemon"
SPECIES_ENDPOINT = "pokemon-species"

# Cache key formats
POKEMON_CACHE_KEY = "pokemon-{id}"
POKEMON_LIST_CACHE_KEY = "pokemon-list-{limit}-{offset}"
SPECIES_CACHE_KEY = "species-{name}"
REGION_CACHE_KEY = "region-{start_id}-{end_id}"

# Cache instance names (one MemoryCache per entity kind)
CACHE_POKEMON = "pokemon"
CACHE_POKEMON_LIST = "pokemon_list"
CACHE_SPECIES = "species"
CACHE_ABILITY = "ability"
CACHE_MOVE = "move"
CACHE_ITEM = "item"
CACHE_EVOLUTION = "evolution"
CACHE_REGION = "region"

# Default page size for the full directory listing
DEFAULT_LIST_LIMIT = 1000

# Truncation length for keys written to log records
LOG_KEY_LENGTH = 80
