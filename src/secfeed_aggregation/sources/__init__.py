"""Feed source providers."""

from secfeed_aggregation.sources.opml import load_feed_sources, parse_opml

__all__ = ["load_feed_sources", "parse_opml"]
