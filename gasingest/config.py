"""Configuration management using Pydantic Settings."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from pydantic_settings import BaseSettings

from gasingest.core.classifier import (
    DEFAULT_SCRIPT_ID_PATTERNS,
    DEFAULT_WEB_APP_PATTERNS,
    ScriptIdPattern,
)
from gasingest.exceptions import ConfigError


# Ordered by how common the topic is among GAS repositories on GitHub
DEFAULT_GAS_TAGS = (
    "google-apps-script",
    "google-sheets",
    "gmail",
    "google-workspace",
    "google-drive",
    "google-docs",
    "apps-script",
    "javascript",
    "typescript",
    "library",
    "gas",
)


class SearchSort(str, Enum):
    """Sort order for repository search."""
    UPDATED = "updated"
    STARS = "stars"

    @property
    def order(self) -> str:
        return "desc"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


class IngestSettings(BaseSettings):
    """Environment-driven settings for the ingestion pipeline."""

    # GitHub API
    github_token: str | None = None
    github_api_base: str = "https://api.github.com"
    http_timeout_seconds: float = 30.0

    # Search
    tags: list[str] = list(DEFAULT_GAS_TAGS[:5])
    per_page: int = 10
    sort: SearchSort = SearchSort.UPDATED

    # Rate limiting
    max_requests_per_hour: int = 60
    request_delay_ms: int = 1200
    page_delay_ms: int = 500

    # Retry settings
    retry_enabled: bool = True
    max_retries: int = 3
    retry_backoff_base_ms: int = 1000

    # Ingestion
    staleness_years: int = 2
    generate_summary: bool = True
    max_reported_errors: int = 10

    # Refresh job
    refresh_batch_size: int = 10
    refresh_delay_ms: int = 500

    # Catalog
    catalog_path: str = ".gasingest_catalog.db"

    # Logging
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.CONSOLE
    verbose: bool = True

    model_config = {
        "env_prefix": "GASINGEST_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


def normalize_tags(tags: Iterable[str]) -> dict[str, bool]:
    """
    Strip, drop empty and deduplicate tags, keeping first-seen order.

    Returns:
        Ordered mapping of tag text to inclusion
    """
    normalized: dict[str, bool] = {}
    for tag in tags:
        if not isinstance(tag, str):
            continue
        cleaned = tag.strip()
        if cleaned and cleaned not in normalized:
            normalized[cleaned] = True
    return normalized


@dataclass(frozen=True)
class SearchConfig:
    """
    Immutable per-run configuration passed through the pipeline.

    Built once per run, usually with SearchConfig.from_settings().
    """

    tags: dict[str, bool]
    max_requests_per_hour: int = 60
    request_delay_ms: int = 1200
    page_delay_ms: int = 500
    verbose: bool = True
    script_id_patterns: tuple[ScriptIdPattern, ...] = DEFAULT_SCRIPT_ID_PATTERNS
    web_app_patterns: tuple[re.Pattern, ...] = DEFAULT_WEB_APP_PATTERNS

    def __post_init__(self):
        if not self.tags:
            raise ConfigError("No valid tags specified")

    @property
    def tag_list(self) -> list[str]:
        """Included tags in order."""
        return [tag for tag, included in self.tags.items() if included]

    @classmethod
    def from_settings(
        cls,
        settings: IngestSettings | None = None,
        tags: Iterable[str] | None = None,
    ) -> "SearchConfig":
        """
        Build a SearchConfig from settings.

        Args:
            settings: IngestSettings instance, uses defaults if None
            tags: Override for settings.tags

        Raises:
            ConfigError: If no non-empty tag remains
        """
        settings = settings or IngestSettings()
        return cls(
            tags=normalize_tags(tags if tags is not None else settings.tags),
            max_requests_per_hour=settings.max_requests_per_hour,
            request_delay_ms=settings.request_delay_ms,
            page_delay_ms=settings.page_delay_ms,
            verbose=settings.verbose,
        )
