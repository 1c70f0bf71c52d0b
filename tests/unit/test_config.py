"""Unit tests for configuration management."""

import pytest
from pydantic import ValidationError

from secfeed_aggregation.config import (
    CacheConfig,
    Config,
    LoggingConfig,
    SummarizerConfig,
    TelegramConfig,
    get_config,
    load_config_from_yaml,
    set_config,
)


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self, default_config):
        assert default_config.fetcher.timeout_seconds == 5.0
        assert default_config.fetcher.max_redirects == 3
        assert default_config.aggregator.batch_size == 20
        assert default_config.deduplicator.title_similarity_threshold == 0.85
        assert default_config.cache.backend == "redis"
        assert default_config.push.ttl_hours == 48
        assert default_config.push.interval_minutes == 30
        assert default_config.telegram.chat_ids == []
        assert default_config.summarizer.model == "deepseek-chat"
        assert default_config.scheduler.interval_minutes == 30
        assert default_config.feed.opml_path == "RAW.opml"

    def test_get_config_returns_global(self, default_config):
        assert get_config() is default_config

    def test_set_config_none_resets(self, default_config):
        set_config(None)
        fresh = get_config()
        assert fresh is not default_config
        assert isinstance(fresh, Config)


class TestValidators:
    """Tests for field validators."""

    def test_cache_backend_normalized(self):
        assert CacheConfig(backend=" Memory ").backend == "memory"

    def test_invalid_cache_backend(self):
        with pytest.raises(ValidationError):
            CacheConfig(backend="memcached")

    def test_parse_mode(self):
        assert TelegramConfig(parse_mode="MarkdownV2").parse_mode == "MarkdownV2"
        with pytest.raises(ValidationError):
            TelegramConfig(parse_mode="html")

    def test_summarizer_method(self):
        assert SummarizerConfig(method="PLAIN").method == "plain"
        with pytest.raises(ValidationError):
            SummarizerConfig(method="extractive")

    def test_log_level(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="verbose")

    def test_bounds(self):
        with pytest.raises(ValidationError):
            TelegramConfig(max_message_length=5000)


class TestEnvironment:
    """Tests for environment variable overrides."""

    def test_section_env_vars(self, monkeypatch):
        monkeypatch.setenv("CACHE_BACKEND", "memory")
        monkeypatch.setenv("PUSH_TTL_HOURS", "24")
        monkeypatch.setenv("TELEGRAM_CHAT_IDS", '["-1001", "-1002"]')

        config = Config(_env_file=None)

        assert config.cache.backend == "memory"
        assert config.push.ttl_hours == 24
        assert config.telegram.chat_ids == ["-1001", "-1002"]

    def test_root_env_vars(self, monkeypatch):
        monkeypatch.setenv("SECFEED_DEBUG", "true")
        assert Config(_env_file=None).debug is True


class TestLoadConfigFromYaml:
    """Tests for load_config_from_yaml."""

    def test_load(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "app_name: TestFeed\n"
            "cache:\n"
            "  backend: memory\n"
            "telegram:\n"
            "  chat_ids: ['-1001']\n"
            "  max_message_length: 3000\n",
            encoding="utf-8",
        )

        config = load_config_from_yaml(str(config_file))

        assert config.app_name == "TestFeed"
        assert config.cache.backend == "memory"
        assert config.telegram.chat_ids == ["-1001"]
        assert config.telegram.max_message_length == 3000
        assert config.push.ttl_hours == 48

    def test_env_fills_missing_sections(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PUSH_TTL_HOURS", "12")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("cache:\n  backend: memory\n", encoding="utf-8")

        assert load_config_from_yaml(str(config_file)).push.ttl_hours == 12

    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("", encoding="utf-8")

        assert load_config_from_yaml(str(config_file)).cache.backend == "redis"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_from_yaml(str(tmp_path / "missing.yaml"))
