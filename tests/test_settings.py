import importlib

import pytest

from config import settings as settings_module
from config.settings import ApiSettings, validate_settings


class TestApiSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "API_BASE_URL",
            "API_TIMEOUT_MS",
            "RETRY_ATTEMPTS",
            "BATCH_SIZE",
            "DELAY_MS",
            "CACHE_TTL_MINUTES",
            "MEMORY_CACHE_TTL_MINUTES",
            "ITEMS_PER_PAGE",
            "DEBUG_API_CALLS",
        ):
            monkeypatch.delenv(name, raising=False)
        # Keep a developer .env file out of the defaults
        monkeypatch.setattr("dotenv.load_dotenv", lambda *a, **k: False)

        module = importlib.reload(settings_module)
        try:
            defaults = module.ApiSettings.from_env()
            assert defaults.base_url == "https://pokeapi.co/api/v2"
            assert defaults.timeout_ms == 10000
            assert defaults.retry_attempts == 3
            assert defaults.batch_size == 10
            assert defaults.delay_ms == 150
            assert defaults.cache_ttl_minutes == 60
            assert defaults.memory_cache_ttl_minutes == 30
            assert defaults.items_per_page == 10
            assert defaults.debug_api_calls is False
        finally:
            importlib.reload(settings_module)

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BATCH_SIZE", "25")
        monkeypatch.setenv("DELAY_MS", "not-a-number")
        monkeypatch.setenv("RETRY_ATTEMPTS", "0")
        monkeypatch.setenv("DEBUG_API_CALLS", "true")
        monkeypatch.setattr("dotenv.load_dotenv", lambda *a, **k: False)

        module = importlib.reload(settings_module)
        try:
            assert module.BATCH_SIZE == 25
            assert module.DELAY_MS == 150
            assert module.RETRY_ATTEMPTS == 3
            assert module.DEBUG_API_CALLS is True
        finally:
            monkeypatch.undo()
            importlib.reload(settings_module)

    def test_from_env_reads_current_environment(self, monkeypatch):
        monkeypatch.setenv("API_BASE_URL", "https://mirror.test/api/v2")
        monkeypatch.setenv("BATCH_SIZE", "7")
        monkeypatch.setenv("DELAY_MS", "-5")
        monkeypatch.setenv("MEMORY_CACHE_TTL_MINUTES", "2.5")
        monkeypatch.setenv("ENABLE_API_LOGGING", "TRUE")

        current = ApiSettings.from_env()

        assert current.base_url == "https://mirror.test/api/v2"
        assert current.batch_size == 7
        assert current.delay_ms == 150
        assert current.memory_cache_ttl_minutes == 2.5
        assert current.enable_api_logging is True

        monkeypatch.delenv("BATCH_SIZE")
        assert ApiSettings.from_env().batch_size == 10

    def test_api_root_strips_trailing_slash(self):
        assert ApiSettings(base_url="https://example.test/api/").api_root == (
            "https://example.test/api"
        )


class TestValidateSettings:
    def test_valid_settings_pass(self, settings):
        assert validate_settings(settings) is settings

    @pytest.mark.parametrize(
        "overrides",
        [
            {"timeout_ms": 0},
            {"retry_attempts": 0},
            {"batch_size": 0},
            {"delay_ms": -1},
            {"memory_cache_ttl_minutes": 0},
            {"retry_base_delay_ms": 2000, "retry_max_delay_ms": 1000},
            {"base_url": ""},
        ],
    )
    def test_invalid_settings_raise(self, overrides):
        with pytest.raises(ValueError):
            validate_settings(ApiSettings(**overrides))
