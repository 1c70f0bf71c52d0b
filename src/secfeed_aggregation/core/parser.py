"""
Entry parser turning feedparser output into validated raw entries.

Handles field selection, HTML stripping for the plain-text snippet, and
whitespace normalization. Nothing here drops an entry; classification
decides what survives.
"""

import re
from html import unescape
from typing import Any, Optional

from bs4 import BeautifulSoup

from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.models.item import RawFeedEntry

logger = get_logger(__name__)


class ContentParser:
    """Parser for normalizing feedparser entries into RawFeedEntry."""

    def __init__(self, max_title_length: int = 500):
        """Initialize content parser.

        Args:
            max_title_length: Titles longer than this are truncated
        """
        self.max_title_length = max_title_length

    def parse_entry(self, raw_entry: Any) -> RawFeedEntry:
        """Parse and normalize a feedparser entry.

        Args:
            raw_entry: Entry dict from ``feedparser.parse(...).entries``

        Returns:
            RawFeedEntry with every field optional
        """
        content = self._extract_content(raw_entry)

        return RawFeedEntry(
            title=self._normalize_title(raw_entry.get("title")),
            link=self._clean(raw_entry.get("link")),
            guid=self._clean(raw_entry.get("id") or raw_entry.get("guid")),
            enclosure_url=self._extract_enclosure(raw_entry),
            content=content,
            content_snippet=self._snippet(content),
            pub_date=self._clean(
                raw_entry.get("published") or raw_entry.get("updated") or raw_entry.get("created")
            ),
        )

    def _normalize_title(self, title: Optional[str]) -> Optional[str]:
        """Normalize entry title.

        Args:
            title: Raw title

        Returns:
            Normalized title or None
        """
        if not title:
            return None

        title = unescape(str(title))
        title = re.sub(r"\s+", " ", title.strip())

        if len(title) > self.max_title_length:
            title = title[: self.max_title_length - 3] + "..."

        return title if title else None

    def _clean(self, value: Optional[Any]) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value if value else None

    def _extract_content(self, raw_entry: Any) -> Optional[str]:
        """Full content if the feed provides it, else the summary/description."""
        contents = raw_entry.get("content")
        if isinstance(contents, list):
            for part in contents:
                value = part.get("value") if hasattr(part, "get") else None
                if value and value.strip():
                    return value
        return self._clean(raw_entry.get("summary") or raw_entry.get("description"))

    def _extract_enclosure(self, raw_entry: Any) -> Optional[str]:
        enclosures = raw_entry.get("enclosures")
        if isinstance(enclosures, list):
            for enclosure in enclosures:
                if not hasattr(enclosure, "get"):
                    continue
                href = enclosure.get("href") or enclosure.get("url")
                if href:
                    return self._clean(href)
        return None

    def _snippet(self, content: Optional[str]) -> Optional[str]:
        if not content:
            return None
        text = self._normalize_whitespace(self._strip_html(content))
        return text if text else None

    def _strip_html(self, html: str) -> str:
        """Strip HTML tags from content.

        Args:
            html: HTML content

        Returns:
            Plain text content
        """
        if not html:
            return ""

        if "<" not in html:
            return unescape(html)

        soup = BeautifulSoup(html, "html.parser")

        for element in soup(["script", "style", "noscript"]):
            element.decompose()

        return soup.get_text(separator=" ")

    def _normalize_whitespace(self, text: str) -> str:
        """Collapse runs of whitespace into single spaces."""
        if not text:
            return ""
        return re.sub(r"\s+", " ", text).strip()


def create_parser(max_title_length: int = 500) -> ContentParser:
    """Create a configured ContentParser instance.

    Args:
        max_title_length: Maximum title length

    Returns:
        Configured ContentParser instance
    """
    return ContentParser(max_title_length=max_title_length)
