import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

"""
Configuration settings for the Pokedex data layer.

This module loads environment variables, defines the defaults for the
fetch pipeline (timeouts, retries, batching, cache lifetimes), and validates
the configuration to ensure stability. The values are collected into an
ApiSettings object that is passed explicitly to every component.
"""

load_dotenv()

logger = logging.getLogger("pokedex.config")


def _env_number(name: str, default, cast=int):
    """
    Read a positive number from the environment.

    Missing, unparseable or non-positive values fall back to the default.
    """
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except (ValueError, TypeError):
        logger.warning(f"⚠️  {name}={raw!r} is not a number, using {default}")
        return default
    if value <= 0:
        return default
    return value


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() == "true"


# Defaults used when a variable is unset or invalid
DEFAULT_API_BASE_URL = "https://pokeapi.co/api/v2"
DEFAULT_API_TIMEOUT_MS = 10000
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_BATCH_SIZE = 10
DEFAULT_DELAY_MS = 150
DEFAULT_CACHE_TTL_MINUTES = 60
DEFAULT_MEMORY_CACHE_TTL_MINUTES = 30
DEFAULT_ITEMS_PER_PAGE = 10

# API Configuration
API_BASE_URL = os.getenv("API_BASE_URL") or DEFAULT_API_BASE_URL
API_TIMEOUT_MS = _env_number("API_TIMEOUT_MS", DEFAULT_API_TIMEOUT_MS)
RETRY_ATTEMPTS = _env_number("RETRY_ATTEMPTS", DEFAULT_RETRY_ATTEMPTS)

# Retry backoff: min(base * 2^(attempt-1), max)
RETRY_BASE_DELAY_MS = 1000
RETRY_MAX_DELAY_MS = 5000

# Bulk fetch throttling
BATCH_SIZE = _env_number("BATCH_SIZE", DEFAULT_BATCH_SIZE)
DELAY_MS = _env_number("DELAY_MS", DEFAULT_DELAY_MS)

# Cache Configuration (CACHE_TTL_MINUTES is the server tier)
CACHE_TTL_MINUTES = _env_number("CACHE_TTL_MINUTES", DEFAULT_CACHE_TTL_MINUTES, float)
MEMORY_CACHE_TTL_MINUTES = _env_number(
    "MEMORY_CACHE_TTL_MINUTES", DEFAULT_MEMORY_CACHE_TTL_MINUTES, float
)

# UI pagination (consumed by the presentation layer only)
ITEMS_PER_PAGE = _env_number("ITEMS_PER_PAGE", DEFAULT_ITEMS_PER_PAGE)

# Logging Configuration
DEBUG_API_CALLS = _env_flag("DEBUG_API_CALLS")
ENABLE_API_LOGGING = _env_flag("ENABLE_API_LOGGING")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Connection pool settings
CONNECTION_POOL_LIMIT = 100
CONNECTION_POOL_LIMIT_PER_HOST = 30
CONNECTION_KEEPALIVE_TIMEOUT = 30  # Seconds to keep idle connections
USER_AGENT = "Pokedex-Data-Client/1.0"


@dataclass(frozen=True)
class ApiSettings:
    """
    Immutable bundle of the knobs used by the fetch pipeline.

    Construct one at application start (usually with `from_env`) and hand
    it to the executor, caches, client and region fetcher. Tests build their
    own instances with whatever values they need.

    Attributes:
        base_url: Root of the PokeAPI-compatible REST service.
        timeout_ms: Deadline for a single request attempt.
        retry_attempts: Total attempts per request (>= 1).
        retry_base_delay_ms: First backoff delay between attempts.
        retry_max_delay_ms: Cap applied to the exponential backoff.
        batch_size: Number of records resolved concurrently per batch.
        delay_ms: Pause between consecutive batches.
        cache_ttl_minutes: Lifetime of server-tier cache entries.
        memory_cache_ttl_minutes: Lifetime of in-memory cache entries.
        items_per_page: UI pagination size (not used by the core).
        debug_api_calls: Log every attempt and cache access.
        enable_api_logging: Log every outgoing URL.
    """

    base_url: str = API_BASE_URL
    timeout_ms: int = API_TIMEOUT_MS
    retry_attempts: int = RETRY_ATTEMPTS
    retry_base_delay_ms: int = RETRY_BASE_DELAY_MS
    retry_max_delay_ms: int = RETRY_MAX_DELAY_MS
    batch_size: int = BATCH_SIZE
    delay_ms: int = DELAY_MS
    cache_ttl_minutes: float = CACHE_TTL_MINUTES
    memory_cache_ttl_minutes: float = MEMORY_CACHE_TTL_MINUTES
    items_per_page: int = ITEMS_PER_PAGE
    debug_api_calls: bool = DEBUG_API_CALLS
    enable_api_logging: bool = ENABLE_API_LOGGING

    @classmethod
    def from_env(cls) -> "ApiSettings":
        """
        Build settings from the current process environment.

        Variables are read at call time, so changes made after import are
        picked up. Values from a .env file are available once `load_dotenv()`
        has run (it runs when this module is imported).
        """
        return cls(
            base_url=os.getenv("API_BASE_URL") or DEFAULT_API_BASE_URL,
            timeout_ms=_env_number("API_TIMEOUT_MS", DEFAULT_API_TIMEOUT_MS),
            retry_attempts=_env_number("RETRY_ATTEMPTS", DEFAULT_RETRY_ATTEMPTS),
            batch_size=_env_number("BATCH_SIZE", DEFAULT_BATCH_SIZE),
            delay_ms=_env_number("DELAY_MS", DEFAULT_DELAY_MS),
            cache_ttl_minutes=_env_number(
                "CACHE_TTL_MINUTES", DEFAULT_CACHE_TTL_MINUTES, float
            ),
            memory_cache_ttl_minutes=_env_number(
                "MEMORY_CACHE_TTL_MINUTES", DEFAULT_MEMORY_CACHE_TTL_MINUTES, float
            ),
            items_per_page=_env_number("ITEMS_PER_PAGE", DEFAULT_ITEMS_PER_PAGE),
            debug_api_calls=_env_flag("DEBUG_API_CALLS"),
            enable_api_logging=_env_flag("ENABLE_API_LOGGING"),
        )

    @property
    def api_root(self) -> str:
        return self.base_url.rstrip("/")


def validate_settings(settings: ApiSettings) -> ApiSettings:
    """
    Validate configuration settings to catch errors at startup.

    Args:
        settings: The settings object to check.

    Returns:
        The same settings object, for chaining.

    Raises:
        ValueError: If any configuration value is invalid (e.g., negative
            delays, zero retry attempts).
    """
    if not settings.base_url:
        raise ValueError("API_BASE_URL must not be empty")

    # Validate request settings
    if settings.timeout_ms <= 0:
        raise ValueError("API_TIMEOUT_MS must be positive")

    if settings.retry_attempts < 1:
        raise ValueError("RETRY_ATTEMPTS must be at least 1")

    if settings.retry_base_delay_ms < 0:
        raise ValueError("retry base delay must be non-negative")

    if settings.retry_max_delay_ms < settings.retry_base_delay_ms:
        raise ValueError("retry max delay must be >= retry base delay")

    # Validate batching
    if settings.batch_size < 1:
        raise ValueError("BATCH_SIZE must be at least 1")

    if settings.delay_ms < 0:
        raise ValueError("DELAY_MS must be non-negative")

    # Validate cache settings
    if settings.cache_ttl_minutes <= 0:
        raise ValueError("CACHE_TTL_MINUTES must be positive")

    if settings.memory_cache_ttl_minutes <= 0:
        raise ValueError("MEMORY_CACHE_TTL_MINUTES must be positive")

    if settings.items_per_page < 1:
        raise ValueError("ITEMS_PER_PAGE must be at least 1")

    return settings
