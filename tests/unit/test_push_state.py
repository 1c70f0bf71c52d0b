"""Unit tests for push-state tracking."""

import asyncio

import pytest

from secfeed_aggregation.core.push_state import PushStateTracker, create_push_state, message_id
from secfeed_aggregation.storage import MemoryCache


@pytest.fixture
def cache():
    store = MemoryCache()
    asyncio.run(store.connect())
    return store


@pytest.fixture
def tracker(cache):
    return create_push_state(cache)


class TestMessageId:
    """Tests for message_id."""

    def test_uses_canonical_link(self, make_item):
        item = make_item(link="https://X.com/a?ref=1#top")
        assert message_id(item) == "https://x.com/a"

    def test_without_link(self, make_item):
        item = make_item(title="  Bridge Hacked ", link="", feed_url=" HTTPS://Feeds.Example.org/RSS ")
        assert message_id(item) == "bridge hacked:https://feeds.example.org/rss"

    def test_tracking_params_share_id(self, make_item):
        first = make_item(link="https://x.com/a?utm_source=tw")
        second = make_item(link="https://x.com/a")
        assert message_id(first) == message_id(second)


class TestPushStateTracker:
    """Tests for PushStateTracker."""

    def test_init_uses_config(self, tracker):
        assert tracker.set_key == "telegram:pushed_messages"
        assert tracker.ttl_hours == 48

    def test_mark_then_filter(self, tracker, make_item):
        items = [make_item(link="https://x.com/1"), make_item(link="https://x.com/2")]

        async def _run():
            assert await tracker.mark_pushed(items) is True
            return await tracker.filter_unpushed(items)

        assert asyncio.run(_run()) == []

    def test_filter_keeps_new_items_in_order(self, tracker, make_item):
        old = make_item(link="https://x.com/old")
        new_a = make_item(link="https://x.com/a")
        new_b = make_item(link="https://x.com/b")

        async def _run():
            await tracker.mark_pushed([old])
            return await tracker.filter_unpushed([new_a, old, new_b])

        assert asyncio.run(_run()) == [new_a, new_b]

    def test_filter_fails_open(self, make_item):
        tracker = PushStateTracker(MemoryCache())  # never connected
        items = [make_item(link="https://x.com/1"), make_item(link="https://x.com/2")]

        assert asyncio.run(tracker.filter_unpushed(items)) == items

    def test_filter_empty(self, tracker):
        assert asyncio.run(tracker.filter_unpushed([])) == []

    def test_mark_empty_is_success(self, tracker):
        assert asyncio.run(tracker.mark_pushed([])) is True

    def test_mark_fails_when_cache_down(self, make_item):
        tracker = PushStateTracker(MemoryCache())
        assert asyncio.run(tracker.mark_pushed([make_item()])) is False

    def test_mark_sets_expiry(self, make_item):
        clock_now = [0.0]
        cache = MemoryCache(clock=lambda: clock_now[0])
        asyncio.run(cache.connect())
        tracker = PushStateTracker(cache, ttl_hours=1)
        item = make_item()

        asyncio.run(tracker.mark_pushed([item]))
        clock_now[0] = 3599
        assert asyncio.run(tracker.is_pushed(item)) is True

        clock_now[0] = 3600
        assert asyncio.run(tracker.is_pushed(item)) is False

    def test_mark_resets_rolling_expiry(self, make_item):
        clock_now = [0.0]
        cache = MemoryCache(clock=lambda: clock_now[0])
        asyncio.run(cache.connect())
        tracker = PushStateTracker(cache, ttl_hours=1)
        first = make_item(link="https://x.com/1")

        asyncio.run(tracker.mark_pushed([first]))
        clock_now[0] = 3000
        asyncio.run(tracker.mark_pushed([make_item(link="https://x.com/2")]))
        clock_now[0] = 4000

        assert asyncio.run(tracker.is_pushed(first)) is True

    def test_pushed_count_and_clear(self, tracker, make_item):
        async def _run():
            await tracker.mark_pushed([make_item(link="https://x.com/1"), make_item(link="https://x.com/2")])
            before = await tracker.pushed_count()
            cleared = await tracker.clear()
            return before, cleared, await tracker.pushed_count()

        assert asyncio.run(_run()) == (2, True, 0)

    def test_degraded_helpers(self, make_item):
        tracker = PushStateTracker(MemoryCache())

        assert asyncio.run(tracker.is_pushed(make_item())) is False
        assert asyncio.run(tracker.pushed_count()) == 0
        assert asyncio.run(tracker.clear()) is False
