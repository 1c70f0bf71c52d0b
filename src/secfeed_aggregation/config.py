"""
Configuration management for the security feed aggregator.

Uses Pydantic for validation and pydantic-settings for environment variable support.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FetcherConfig(BaseSettings):
    """RSS/Atom fetcher configuration."""

    model_config = SettingsConfigDict(env_prefix="FETCHER_")

    # Short timeout so one slow feed cannot stall a batch
    timeout_seconds: float = Field(default=5.0, gt=0, le=120, description="Request timeout")
    max_redirects: int = Field(default=3, ge=0, le=20, description="Maximum redirects to follow")
    user_agent: str = Field(
        default="SecFeed-Aggregation/0.1.0 (+https://github.com/secfeed-aggregation)",
        description="User-Agent header",
    )

    max_entries_per_feed: int = Field(
        default=0, ge=0, le=1000,
        description="Max entries to classify per feed (0=unlimited)"
    )


class AggregatorConfig(BaseSettings):
    """Aggregator configuration."""

    model_config = SettingsConfigDict(env_prefix="AGGREGATOR_")

    batch_size: int = Field(default=20, ge=1, le=100, description="Feeds fetched concurrently per batch")


class DeduplicatorConfig(BaseSettings):
    """Deduplication configuration."""

    model_config = SettingsConfigDict(env_prefix="DEDUP_")

    enabled: bool = Field(default=True, description="Enable deduplication")

    # Similarity threshold (0.0 - 1.0), strictly exceeded to count as duplicate
    title_similarity_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Title similarity threshold"
    )


class CacheConfig(BaseSettings):
    """External cache store configuration."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    backend: str = Field(default="redis", description="Cache backend: redis or memory")
    url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    connect_retries: int = Field(default=10, ge=0, le=50, description="Connection attempts before giving up")
    retry_backoff_ms: int = Field(default=100, ge=0, description="Linear backoff step between attempts")
    socket_timeout_seconds: float = Field(default=5.0, gt=0, description="Socket timeout")

    items_key: str = Field(default="security_feeds:all", description="Key for the cached item list")
    items_ttl_seconds: int = Field(default=3600, ge=1, description="TTL of the cached item list")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate cache backend name."""
        v = v.lower().strip()
        valid_backends = ["redis", "memory"]
        if v not in valid_backends:
            raise ValueError(f"Invalid cache backend: {v!r}. Must be one of {valid_backends}")
        return v


class PushConfig(BaseSettings):
    """Push-state tracking configuration."""

    model_config = SettingsConfigDict(env_prefix="PUSH_")

    set_key: str = Field(default="telegram:pushed_messages", description="Set key of pushed message ids")
    ttl_hours: int = Field(default=48, ge=1, le=24 * 30, description="Rolling expiry of the pushed set")
    interval_minutes: int = Field(default=30, ge=1, description="Push window when no previous push is known")
    manual_push_limit: int = Field(default=10, ge=1, le=100, description="Items sent by a manual push")


class TelegramConfig(BaseSettings):
    """Messaging delivery configuration."""

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_")

    enabled: bool = Field(default=True, description="Enable delivery")
    bot_token: Optional[str] = Field(default=None, description="Bot API token")
    chat_ids: list[str] = Field(default_factory=list, description="Destination chat ids")
    forward_chat_id: Optional[str] = Field(default=None, description="Chat receiving forwarded messages")
    webhook_secret: Optional[str] = Field(default=None, description="Webhook secret token")
    api_base: str = Field(default="https://api.telegram.org", description="Bot API base URL")
    parse_mode: str = Field(default="HTML", description="Message parse mode")
    timeout_seconds: float = Field(default=10.0, gt=0, description="Request timeout")

    max_message_length: int = Field(default=4000, ge=100, le=4096, description="Chunk size limit")
    chunk_delay_seconds: float = Field(default=0.5, ge=0, description="Delay between chunks")
    display_timezone: str = Field(default="Asia/Shanghai", description="Timezone for dates in digests")

    @field_validator("parse_mode")
    @classmethod
    def validate_parse_mode(cls, v: str) -> str:
        """Validate parse mode."""
        valid_modes = ["HTML", "Markdown", "MarkdownV2"]
        if v not in valid_modes:
            raise ValueError(f"Invalid parse_mode: {v!r}. Must be one of {valid_modes}")
        return v


class SummarizerConfig(BaseSettings):
    """Digest summarizer configuration."""

    model_config = SettingsConfigDict(env_prefix="SUMMARIZER_")

    enabled: bool = Field(default=True, description="Enable summarization")
    method: str = Field(default="ai", description="Method: ai or plain")
    api_key: Optional[str] = Field(default=None, description="API key for the summarization endpoint")
    base_url: str = Field(default="https://api.deepseek.com/v1", description="OpenAI-compatible endpoint")
    model: str = Field(default="deepseek-chat", description="Chat model")
    max_items: int = Field(default=20, ge=1, le=100, description="Items passed to the model")
    max_tokens: int = Field(default=2000, ge=100, le=8000, description="Max tokens in the digest")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout_seconds: float = Field(default=60.0, gt=0, description="Request timeout")

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Validate summarization method."""
        v = v.lower().strip()
        valid_methods = ["ai", "plain"]
        if v not in valid_methods:
            raise ValueError(f"Invalid summarizer method: {v!r}. Must be one of {valid_methods}")
        return v


class SchedulerConfig(BaseSettings):
    """Refresh scheduler configuration."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    enabled: bool = Field(default=True, description="Enable scheduler")
    timezone: str = Field(default="Asia/Shanghai", description="Scheduler timezone")
    interval_minutes: int = Field(default=30, ge=1, description="Refresh interval")
    run_immediately: bool = Field(default=True, description="Run one refresh on start")
    misfire_grace_time: int = Field(default=300, ge=0, description="Misfire grace time in seconds")


class FeedConfig(BaseSettings):
    """Feed source list configuration."""

    model_config = SettingsConfigDict(env_prefix="FEED_")

    opml_path: str = Field(default="RAW.opml", description="OPML file listing the feeds")


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format"
    )

    # File logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_path: str = Field(default="logs/secfeed_aggregation.log", description="Log file path")
    rotation: str = Field(default="100 MB", description="Log rotation size")
    retention: str = Field(default="30 days", description="Log retention period")

    # Console logging
    console_enabled: bool = Field(default=True, description="Enable console logging")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SECFEED_",
        case_sensitive=False,
    )

    # Application
    version: str = Field(default="0.1.0", description="Application version")
    app_name: str = Field(default="SecFeed", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    # Sub-configurations
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    aggregator: AggregatorConfig = Field(default_factory=AggregatorConfig)
    deduplicator: DeduplicatorConfig = Field(default_factory=DeduplicatorConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    push: PushConfig = Field(default_factory=PushConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    summarizer: SummarizerConfig = Field(default_factory=SummarizerConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


_SECTION_CLASSES: dict[str, type[BaseSettings]] = {
    "fetcher": FetcherConfig,
    "aggregator": AggregatorConfig,
    "deduplicator": DeduplicatorConfig,
    "cache": CacheConfig,
    "push": PushConfig,
    "telegram": TelegramConfig,
    "summarizer": SummarizerConfig,
    "scheduler": SchedulerConfig,
    "feed": FeedConfig,
    "logging": LoggingConfig,
}

# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def set_config(config: Optional[Config]) -> None:
    """Replace the global configuration instance (None resets it)."""
    global _config
    _config = config


def load_config_from_yaml(yaml_path: str) -> Config:
    """Load configuration from a YAML file.

    Note: Values loaded from YAML take precedence over environment variables.
    Sections missing from the file are still read from the environment.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        Config instance loaded from the file.
    """
    import yaml

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    with yaml_file.open("r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    main_config = {}
    nested_configs = {}

    for key, value in config_dict.items():
        if key in _SECTION_CLASSES:
            nested_configs[key] = value
        else:
            main_config[key] = value

    # Rebuild each section so env vars still fill in what the file omits
    for key, config_class in _SECTION_CLASSES.items():
        if key in nested_configs:
            nested_configs[key] = config_class(**(nested_configs[key] or {}))
        else:
            nested_configs[key] = config_class()

    main_config.update(nested_configs)
    return Config(**main_config)


def reload_config() -> Config:
    """Reload configuration from environment and YAML files."""
    global _config
    _config = None

    config_yaml = Path("config/config.yaml")
    if config_yaml.exists():
        _config = load_config_from_yaml(str(config_yaml))
    else:
        _config = Config()

    return _config
