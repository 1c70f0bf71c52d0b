"""
OPML feed list loader.

Every ``<outline type="rss" xmlUrl="...">`` element, at any nesting depth,
becomes a FeedSource. Category outlines without an ``xmlUrl`` are walked
but not emitted.
"""

from pathlib import Path
from typing import Optional, Union

from bs4 import BeautifulSoup

from secfeed_aggregation.config import get_config
from secfeed_aggregation.exceptions import FeedSourceError
from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.models.feed import FeedSource

logger = get_logger(__name__)


def parse_opml(content: str) -> list[FeedSource]:
    """Parse OPML text into feed sources, in document order.

    Args:
        content: OPML document

    Returns:
        FeedSource list
    """
    # html.parser lower-cases attribute names (xmlUrl -> xmlurl)
    soup = BeautifulSoup(content, "html.parser")
    sources = []

    for outline in soup.find_all("outline"):
        if (outline.get("type") or "").lower() != "rss":
            continue
        feed_url = (outline.get("xmlurl") or "").strip()
        if not feed_url:
            continue
        sources.append(
            FeedSource(
                title=outline.get("text") or outline.get("title") or "Untitled",
                feed_url=feed_url,
                site_url=outline.get("htmlurl") or None,
            )
        )

    return sources


def load_feed_sources(path: Optional[Union[str, Path]] = None) -> list[FeedSource]:
    """Load feed sources from an OPML file.

    Args:
        path: OPML file (defaults to the configured path)

    Returns:
        FeedSource list

    Raises:
        FeedSourceError: If the file is missing or unreadable
    """
    opml_path = Path(path or get_config().feed.opml_path)

    if not opml_path.exists():
        raise FeedSourceError(f"OPML file not found: {opml_path}")

    try:
        content = opml_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FeedSourceError(f"Cannot read OPML file {opml_path}: {e}") from e

    sources = parse_opml(content)
    logger.info(f"Found {len(sources)} RSS feeds in {opml_path}")
    return sources
