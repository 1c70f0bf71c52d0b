"""Shared fixtures for the test suite."""

import os

import pytest

from secfeed_aggregation.config import Config, set_config
from secfeed_aggregation.models import Category, SecurityItem

_ENV_PREFIXES = (
    "SECFEED_", "FETCHER_", "AGGREGATOR_", "DEDUP_", "CACHE_", "PUSH_",
    "TELEGRAM_", "SUMMARIZER_", "SCHEDULER_", "FEED_", "LOG_",
)


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """Run every test against default settings, independent of the host env."""
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)

    config = Config(_env_file=None)
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def make_item():
    """Factory for SecurityItem with sensible defaults."""

    def _make(
        title: str = "Bridge hacked for $10M",
        link: str = "https://news.example.org/a",
        pub_date: str = None,
        category: Category = Category.BLOCKCHAIN_ATTACK,
        **kwargs,
    ) -> SecurityItem:
        kwargs.setdefault("feed_title", "Test Feed")
        kwargs.setdefault("feed_url", "https://feeds.example.org/rss")
        return SecurityItem(
            title=title,
            link=link,
            pub_date=pub_date,
            category=category,
            **kwargs,
        )

    return _make
