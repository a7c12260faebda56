"""Unit tests for configuration management."""

import pytest

from gasingest.config import (
    DEFAULT_GAS_TAGS,
    IngestSettings,
    LogFormat,
    SearchConfig,
    SearchSort,
    normalize_tags,
)
from gasingest.exceptions import ConfigError


class TestIngestSettingsDefaults:
    """Test default configuration values."""

    def test_default_delays(self):
        settings = IngestSettings(_env_file=None)
        assert settings.request_delay_ms == 1200
        assert settings.page_delay_ms == 500

    def test_default_search(self):
        settings = IngestSettings(_env_file=None)
        assert settings.tags == list(DEFAULT_GAS_TAGS[:5])
        assert settings.per_page == 10
        assert settings.sort == SearchSort.UPDATED

    def test_default_retry_settings(self):
        settings = IngestSettings(_env_file=None)
        assert settings.retry_enabled is True
        assert settings.max_retries == 3

    def test_default_staleness(self):
        assert IngestSettings(_env_file=None).staleness_years == 2

    def test_default_log_format(self):
        assert IngestSettings(_env_file=None).log_format == LogFormat.CONSOLE


class TestIngestSettingsEnvVars:
    """Test configuration from environment variables."""

    def test_token_from_env(self, monkeypatch):
        monkeypatch.setenv("GASINGEST_GITHUB_TOKEN", "ghp_example")
        assert IngestSettings(_env_file=None).github_token == "ghp_example"

    def test_sort_from_env(self, monkeypatch):
        monkeypatch.setenv("GASINGEST_SORT", "stars")
        assert IngestSettings(_env_file=None).sort == SearchSort.STARS

    def test_tags_from_env(self, monkeypatch):
        monkeypatch.setenv("GASINGEST_TAGS", '["gmail", "google-sheets"]')
        assert IngestSettings(_env_file=None).tags == ["gmail", "google-sheets"]

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("GASINGEST_LOG_LEVEL", "DEBUG")
        assert IngestSettings(_env_file=None).log_level == "DEBUG"

    def test_staleness_from_env(self, monkeypatch):
        monkeypatch.setenv("GASINGEST_STALENESS_YEARS", "3")
        assert IngestSettings(_env_file=None).staleness_years == 3


class TestNormalizeTags:
    """Tag cleanup."""

    def test_strips_and_dedupes_in_order(self):
        tags = normalize_tags(["  gmail ", "gas", "gmail", "", "   "])
        assert list(tags) == ["gmail", "gas"]
        assert all(tags.values())

    def test_non_strings_dropped(self):
        assert list(normalize_tags(["gas", None, 3])) == ["gas"]


class TestSearchConfig:
    """Per-run config construction."""

    def test_from_settings(self, settings):
        config = SearchConfig.from_settings(settings, tags=[" gmail", "gas"])
        assert config.tag_list == ["gmail", "gas"]
        assert config.request_delay_ms == 0
        assert config.max_requests_per_hour == settings.max_requests_per_hour

    def test_defaults_to_settings_tags(self, settings):
        config = SearchConfig.from_settings(settings)
        assert config.tag_list == settings.tags

    def test_empty_tags_rejected(self, settings):
        with pytest.raises(ConfigError, match="No valid tags"):
            SearchConfig.from_settings(settings, tags=["", "  "])

    def test_frozen(self, search_config):
        with pytest.raises(AttributeError):
            search_config.verbose = False

    def test_sort_order(self):
        assert SearchSort.STARS.order == "desc"
