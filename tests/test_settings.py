"""Tests for settings and engine constants."""

import dataclasses

import pytest
from pydantic import ValidationError

from puppet_expressions.config.constants import ENGINE
from puppet_expressions.config.settings import Settings, get_settings


class TestSettings:
    """Tests for environment-backed settings."""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.api_port == 8082
        assert settings.default_fade_ms == ENGINE.DEFAULT_FADE_MS
        assert settings.target_fps == ENGINE.TARGET_FPS
        assert settings.ready_timeout_s == ENGINE.READY_TIMEOUT_S
        assert settings.model_path is None

    def test_frame_interval(self):
        settings = Settings(_env_file=None, target_fps=50)
        assert settings.frame_interval_s == pytest.approx(0.02)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_FADE_MS", "250")
        monkeypatch.setenv("LOG_LEVEL", "WARN")
        settings = Settings(_env_file=None)
        assert settings.default_fade_ms == 250
        assert settings.log_level == "WARN"

    def test_fade_upper_bound(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_fade_ms=ENGINE.MAX_FADE_MS + 1)

    def test_production_requires_key(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, environment="production", auth_enabled=True, api_key=None)

    def test_production_with_key(self):
        settings = Settings(_env_file=None, environment="production", api_key="secret")
        assert settings.api_key == "secret"

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()


class TestEngineConstants:
    """Tests for the ENGINE constants singleton."""

    def test_contract_values(self):
        assert ENGINE.DEFAULT_FADE_MS == 500
        assert ENGINE.MAX_NAME_LENGTH == 50
        assert ENGINE.TRANSITION_HISTORY_SIZE == 100
        assert (ENGINE.DESCRIPTOR_MIN_VALUE, ENGINE.DESCRIPTOR_MAX_VALUE) == (0.0, 1.0)

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            ENGINE.DEFAULT_FADE_MS = 100  # type: ignore[misc]
