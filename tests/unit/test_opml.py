"""Unit tests for the OPML feed list loader."""

import pytest

from secfeed_aggregation.exceptions import FeedSourceError
from secfeed_aggregation.sources import load_feed_sources, parse_opml

SAMPLE_OPML = """<?xml version="1.0" encoding="UTF-8"?>
<opml version="2.0">
  <head><title>Security feeds</title></head>
  <body>
    <outline text="Web3" title="Web3">
      <outline type="rss" text="Rekt News" xmlUrl="https://rekt.news/rss/feed.xml" htmlUrl="https://rekt.news"/>
      <outline text="Audits">
        <outline type="RSS" title="Audit Blog" xmlUrl="https://audits.example.org/feed"/>
      </outline>
    </outline>
    <outline type="rss" xmlUrl="https://untitled.example.org/rss"/>
    <outline type="link" text="Homepage" xmlUrl="https://example.org"/>
    <outline type="rss" text="No URL"/>
    <outline type="rss" text="链闻安全" xmlUrl=" https://cn.example.org/rss "/>
  </body>
</opml>
"""


class TestParseOpml:
    """Tests for parse_opml."""

    def test_parses_nested_outlines(self):
        sources = parse_opml(SAMPLE_OPML)

        assert [source.feed_url for source in sources] == [
            "https://rekt.news/rss/feed.xml",
            "https://audits.example.org/feed",
            "https://untitled.example.org/rss",
            "https://cn.example.org/rss",
        ]

    def test_titles_and_site_urls(self):
        rekt, audit, untitled, cn = parse_opml(SAMPLE_OPML)

        assert rekt.title == "Rekt News"
        assert rekt.site_url == "https://rekt.news"
        assert audit.title == "Audit Blog"
        assert audit.site_url is None
        assert untitled.title == "Untitled"
        assert cn.title == "链闻安全"

    def test_empty_document(self):
        assert parse_opml("<opml><body></body></opml>") == []


class TestLoadFeedSources:
    """Tests for load_feed_sources."""

    def test_load_from_path(self, tmp_path):
        opml_file = tmp_path / "feeds.opml"
        opml_file.write_text(SAMPLE_OPML, encoding="utf-8")

        assert len(load_feed_sources(opml_file)) == 4

    def test_uses_configured_path(self, tmp_path, default_config):
        opml_file = tmp_path / "RAW.opml"
        opml_file.write_text(SAMPLE_OPML, encoding="utf-8")
        default_config.feed.opml_path = str(opml_file)

        assert len(load_feed_sources()) == 4

    def test_missing_file(self, tmp_path):
        with pytest.raises(FeedSourceError, match="not found"):
            load_feed_sources(tmp_path / "missing.opml")

    def test_undecodable_file(self, tmp_path):
        opml_file = tmp_path / "broken.opml"
        opml_file.write_bytes(b"\xff\xfe\xfa not utf-8")

        with pytest.raises(FeedSourceError, match="Cannot read"):
            load_feed_sources(opml_file)
