"""Configuration management for Pinpoint Sentiment."""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings

from .constants import FileConstants, ScoringConstants

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings."""

    # OpenAI API
    openai_api_key: str = Field("", description="OpenAI API key")
    openai_model: str = Field("gpt-4o", description="Primary summarization model")
    openai_fallback_model: str = Field("gpt-4o-mini", description="Fallback summarization model")

    # X.AI (Grok) API
    xai_api_key: str = Field("", description="X.AI API key for Grok/X search")
    xai_models: List[str] = Field(
        default_factory=lambda: ["grok-4", "grok-3", "grok-2-latest", "grok-2", "grok-2-1212"],
        description="Grok models tried in order",
    )

    # YouTube Data API v3
    youtube_api_key: str = Field("", description="YouTube Data API key")

    # Reddit Answers browser automation
    selenium_hub_url: str = Field("", description="Remote Selenium hub URL; local Chrome if empty")
    browser_headless: bool = Field(True, description="Run the browser headless")
    reddit_answer_timeout: float = Field(60.0, description="Seconds to wait for a Reddit Answers reply")
    reddit_page_load_timeout: float = Field(30.0, description="Seconds to wait for page navigation")

    # Persistence
    database_url: str = Field("sqlite:///pinpoint_sentiment.db", description="SQLAlchemy database URL")

    # Pipeline tunables file
    sentiment_config_path: str = Field(FileConstants.SENTIMENT_CONFIG_FILE, description="YAML pipeline config")

    # LLM response cache
    llm_cache_enabled: bool = Field(False, description="Cache summarization responses on disk")
    llm_cache_ttl_hours: int = Field(24, description="LLM cache time-to-live in hours")
    cache_dir: str = Field(FileConstants.CACHE_DIR, description="LLM cache directory")

    # Logging
    log_level: str = Field("INFO", description="Logging level")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


@dataclass(frozen=True)
class SentimentConfig:
    """Pipeline tunables, loaded once per run."""

    lookback_months: int = 12
    run_frequency_months: int = 3
    reddit_max_posts: int = 50
    x_max_posts: int = 100
    youtube_max_videos: int = 15
    youtube_max_comments_per_video: int = 80
    # Browser automation can be unreliable, so Reddit is opt-in
    enable_reddit: bool = False
    enable_x: bool = True
    enable_youtube: bool = True
    parallel_sources: bool = True
    weights: Dict[str, float] = field(default_factory=lambda: dict(ScoringConstants.DEFAULT_WEIGHTS))

    def is_enabled(self, source: str) -> bool:
        return bool(getattr(self, f"enable_{source}", False))

    def with_overrides(self, **overrides) -> "SentimentConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)


DEFAULT_SENTIMENT_CONFIG = SentimentConfig()


def load_sentiment_config(path: Optional[str] = None) -> SentimentConfig:
    """Load pipeline tunables from YAML, falling back to defaults."""
    config_path = path or settings.sentiment_config_path
    if not os.path.exists(config_path):
        logger.warning(f"Sentiment config {config_path} not found. Using defaults.")
        return DEFAULT_SENTIMENT_CONFIG

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load sentiment config {config_path}: {e}. Using defaults.")
        return DEFAULT_SENTIMENT_CONFIG

    if not isinstance(raw, dict):
        logger.warning(f"Sentiment config {config_path} is not a mapping. Using defaults.")
        return DEFAULT_SENTIMENT_CONFIG

    known =set(SentimentConfig.__dataclass_fields__)
    unknown = sorted(set(raw) - known)
    if unknown:
        logger.warning(f"Ignoring unknown sentiment config keys: {', '.join(unknown)}")

    values = {k: v for k, v in raw.items() if k in known}
    if "weights" in values:
        weights = dict(ScoringConstants.DEFAULT_WEIGHTS)
        weights.update({k: float(v) for k, v in (values["weights"] or {}).items()})
        values["weights"] = weights

    return SentimentConfig(**values)
