"""Unit tests for smartreader.config."""

from __future__ import annotations

import platformdirs
import pytest

from smartreader.config import (
    _DEFAULT_DATA_DIR,
    _DEFAULT_DB_PATH,
    DEFAULT_FEEDS,
    CacheSettings,
    Settings,
)
from smartreader.models.summary import SummaryFormat


class TestPlatformDefaults:
    """Verify config defaults use platformdirs instead of hardcoded Unix paths."""

    def test_default_data_dir_matches_platformdirs(self) -> None:
        assert platformdirs.user_data_dir("smartreader") == _DEFAULT_DATA_DIR

    def test_default_db_path_under_data_dir(self) -> None:
        assert _DEFAULT_DB_PATH.startswith(_DEFAULT_DATA_DIR)
        assert _DEFAULT_DB_PATH.endswith("cache.db")

    def test_cache_settings_uses_platform_default(self) -> None:
        assert CacheSettings().db_path == _DEFAULT_DB_PATH


class TestDefaults:
    def test_cache_ttls(self) -> None:
        cache = CacheSettings()
        assert cache.article_ttl_seconds == 86_400
        assert cache.listing_ttl_seconds == 600
        assert cache.summary_ttl_days == 14

    def test_feeds(self) -> None:
        settings = Settings()
        assert [feed.name for feed in settings.feeds] == [feed.name for feed in DEFAULT_FEEDS]
        assert len(settings.feeds) == 5

    def test_model_defaults(self) -> None:
        settings = Settings()
        assert settings.model.temperature == 0.1
        assert settings.prompt.summary_format == SummaryFormat.OBJECT


class TestEnvironmentOverrides:
    def test_nested_env_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SMARTREADER__MODEL__API_KEY", "from-env")
        monkeypatch.setenv("SMARTREADER__SERVER__PORT", "9090")
        monkeypatch.setenv("SMARTREADER__PROMPT__SUMMARY_FORMAT", "list")
        settings = Settings()
        assert settings.model.api_key == "from-env"
        assert settings.server.port == 9090
        assert settings.prompt.summary_format == SummaryFormat.LIST

    def test_constructor_beats_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SMARTREADER__MODEL__NAME", "env-model")
        settings = Settings(model={"name": "init-model"})
        assert settings.model.name == "init-model"
