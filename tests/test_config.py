"""Tests for pipeline settings."""

import pytest

from legacy_bridge.config import PipelineSettings
from legacy_bridge.errors import ConfigurationError


class TestPipelineSettings:
    def test_defaults(self):
        settings = PipelineSettings()

        assert settings.max_workers == 4
        assert settings.duplicate_threshold == 0.85
        assert settings.important_fields == ("name", "email", "type")
        assert settings.phase_timeout is None

    def test_from_dict_ignores_unknown_keys(self):
        settings = PipelineSettings.from_dict({"max_workers": 8, "important_fields": ["name"], "colour": "blue"})

        assert settings.max_workers == 8
        assert settings.important_fields == ("name",)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LEGACY_BRIDGE_MAX_WORKERS", "2")
        monkeypatch.setenv("LEGACY_BRIDGE_PHASE_TIMEOUT", "30")
        monkeypatch.setenv("LEGACY_BRIDGE_IMPORTANT_FIELDS", "name, tin")

        settings = PipelineSettings.from_env()

        assert settings.max_workers == 2
        assert settings.phase_timeout == 30.0
        assert settings.important_fields == ("name", "tin")

    def test_from_env_rejects_bad_values(self, monkeypatch):
        monkeypatch.setenv("LEGACY_BRIDGE_DEFAULT_BATCH_SIZE", "lots")

        with pytest.raises(ConfigurationError):
            PipelineSettings.from_env()

    def test_range_checks(self):
        with pytest.raises(ConfigurationError):
            PipelineSettings(default_batch_size=5000)
        with pytest.raises(ConfigurationError):
            PipelineSettings(duplicate_threshold=1.5)
