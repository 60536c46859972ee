"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SMARTREADER__MODEL__API_KEY=...)
  2. smartreader.yaml       (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; everything except the model API key has a
working default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from smartreader.models.feed import FeedSource
from smartreader.models.summary import SummaryFormat

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("smartreader")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "cache.db")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15"
)

DEFAULT_FEEDS: list[FeedSource] = [
    FeedSource(
        name="法广",
        url="https://www.rfi.fr/cn/rss",
        color="text-red-600",
        domain="www.rfi.fr",
    ),
    FeedSource(
        name="BBC",
        url="https://feeds.bbci.co.uk/zhongwen/trad/rss.xml",
        color="text-orange-700",
        domain="feeds.bbci.co.uk",
    ),
    FeedSource(
        name="亚广",
        url="https://www.rfa.org/arc/outboundfeeds/mandarin/rss/",
        color="text-orange-600",
        domain="www.rfa.org",
    ),
    FeedSource(
        name="大纪元",
        url="https://feed.epochtimes.com/gb/feed",
        color="text-blue-600",
        domain="feed.epochtimes.com",
    ),
    FeedSource(
        name="美国之音",
        url="https://www.voachinese.com/api/zm_yql-vomx-tpeybti",
        color="text-sky-800",
        domain="www.voachinese.com",
    ),
]


def _find_config_file() -> str | None:
    """Return the path of the first smartreader.yaml found, or None."""
    candidates = [
        Path("smartreader.yaml"),
        Path(platformdirs.user_config_dir("smartreader")) / "smartreader.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8787


class ModelSettings(BaseModel):
    api_key: str = ""
    endpoint: str = "https://generativelanguage.googleapis.com/v1beta"
    name: str = "gemma-3-4b-it"
    temperature: float = 0.1
    timeout_seconds: float = 60.0
    # Applied to every harm category when set, e.g. "BLOCK_NONE"
    safety_threshold: str | None = None


class FetcherSettings(BaseModel):
    timeout_seconds: float = 30.0
    max_redirects: int = 3
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "zh-CN,zh;q=0.9,en;q=0.8"


class ExtractionSettings(BaseModel):
    min_paragraph_length: int = 15
    min_listing_text_length: int = 10
    strip_link_query: bool = True


class PromptSettings(BaseModel):
    summary_format: SummaryFormat = SummaryFormat.OBJECT
    role: str = "You are a news analyst."
    language: str = "Simplified Chinese (简体中文)"
    bullet_points: str = "3-5"
    max_payload_chars: int = Field(default=40_000, ge=15_000, le=65_000)
    min_point_length: int = 5


class CacheSettings(BaseModel):
    db_path: str = _DEFAULT_DB_PATH
    article_ttl_seconds: int = 24 * 3600
    listing_ttl_seconds: int = 600
    summary_ttl_days: int = 14
    cleanup_interval_hours: int = 6


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SMARTREADER__SERVER__PORT=9090
        env_prefix="SMARTREADER__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    model: ModelSettings = ModelSettings()
    fetcher: FetcherSettings = FetcherSettings()
    extraction: ExtractionSettings = ExtractionSettings()
    prompt: PromptSettings = PromptSettings()
    cache: CacheSettings = CacheSettings()
    feeds: list[FeedSource] = Field(default_factory=lambda: list(DEFAULT_FEEDS))
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
