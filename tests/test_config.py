"""Tests for environment-driven settings."""

from decimal import Decimal

import pytest

from overtime_engine.config import Settings, get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PORT", "9001")
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("MAX_KILOMETERS", "500")
        monkeypatch.setenv("TARIFF_ZERO_FALLBACK", "TRUE")

        settings = Settings.from_env()

        assert settings.port == 9001
        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert settings.max_kilometers == Decimal("500")
        assert settings.tariff_zero_fallback is True

    def test_settings_read_when_requested(self, monkeypatch):
        """The environment is read on the first call, not at import."""
        monkeypatch.setenv("ENGINE_VERSION", "9.9.9")
        assert get_settings().engine_version == "9.9.9"

        monkeypatch.setenv("ENGINE_VERSION", "1.0.0")
        assert get_settings().engine_version == "9.9.9"

        get_settings.cache_clear()
        assert get_settings().engine_version == "1.0.0"
