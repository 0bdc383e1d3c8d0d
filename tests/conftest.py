import os
import sys
from unittest.mock import AsyncMock

import pytest

# Add project root (and this directory, for the shared payloads) to python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from config.settings import ApiSettings  # noqa: E402
from payloads import BASE_URL  # noqa: E402
from pokedex.api_clients import PokeAPIClient  # noqa: E402
from pokedex.cache import CacheSet  # noqa: E402
from pokedex.region_fetcher import RegionFetcher  # noqa: E402


@pytest.fixture
def settings():
    """Settings with no waiting so tests run instantly."""
    return ApiSettings(
        base_url=BASE_URL,
        timeout_ms=1000,
        retry_attempts=3,
        batch_size=10,
        delay_ms=0,
        memory_cache_ttl_minutes=30,
        debug_api_calls=True,
        enable_api_logging=True,
    )


@pytest.fixture
def caches(settings):
    return CacheSet.from_settings(settings)


@pytest.fixture
def mock_executor():
    """Executor double; tests set `execute.side_effect` per scenario."""
    executor = AsyncMock()
    executor.execute = AsyncMock()
    return executor


@pytest.fixture
def client(mock_executor, caches, settings):
    return PokeAPIClient(mock_executor, caches, settings)


@pytest.fixture
def fetcher(client, caches, settings):
    return RegionFetcher(client, caches, settings)
