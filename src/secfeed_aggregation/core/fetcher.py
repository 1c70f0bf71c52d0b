"""
RSS/Atom feed fetcher with per-feed failure isolation.

One feed is retrieved with a short timeout and a bounded redirect count,
parsed with feedparser, and each entry is classified. A failing feed
yields an empty result and a warning; it never raises into the caller.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional

import feedparser
import httpx

from secfeed_aggregation.config import get_config
from secfeed_aggregation.core.classifier import Classifier, create_classifier
from secfeed_aggregation.core.parser import ContentParser, create_parser
from secfeed_aggregation.exceptions import FeedFetchError
from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.models.feed import FeedSource
from secfeed_aggregation.models.item import RawFeedEntry, SecurityItem

logger = get_logger(__name__)


@dataclass
class FetchResult:
    """Result of a feed fetch operation."""

    success: bool
    feed_url: str
    feed_title: str = ""
    entries_count: int = 0
    items: list[SecurityItem] = field(default_factory=list)
    error: Optional[str] = None
    fetch_time_seconds: float = 0.0
    http_status: Optional[int] = None

    def __post_init__(self):
        """Validate fetch result."""
        if self.success and self.error:
            raise ValueError("Successful fetch cannot have an error")
        if not self.success and not self.error:
            self.error = "Unknown error"

    @property
    def items_count(self) -> int:
        return len(self.items)


@dataclass
class FetchStats:
    """Statistics for feed fetching operations."""

    total_feeds: int = 0
    successful_fetches: int = 0
    failed_fetches: int = 0
    total_entries: int = 0
    total_items: int = 0
    total_time_seconds: float = 0.0
    errors_by_type: dict = field(default_factory=dict)

    def add_result(self, result: FetchResult) -> None:
        """Add a fetch result to statistics.

        Args:
            result: FetchResult to add
        """
        self.total_feeds += 1
        self.total_time_seconds += result.fetch_time_seconds

        if result.success:
            self.successful_fetches += 1
            self.total_entries += result.entries_count
            self.total_items += result.items_count
        else:
            self.failed_fetches += 1
            error_type = result.error.split(":")[0] if result.error else "unknown"
            self.errors_by_type[error_type] = self.errors_by_type.get(error_type, 0) + 1

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        if self.total_feeds == 0:
            return 0.0
        return self.successful_fetches / self.total_feeds

    @property
    def avg_time_seconds(self) -> float:
        """Calculate average fetch time."""
        if self.total_feeds == 0:
            return 0.0
        return self.total_time_seconds / self.total_feeds


def select_link(entry: RawFeedEntry, source: FeedSource) -> str:
    """Best available link: entry link, guid, enclosure, site URL, feed URL."""
    return (
        entry.link
        or entry.guid
        or entry.enclosure_url
        or source.site_url
        or source.feed_url
        or ""
    )


class FeedFetcher:
    """Fetches one feed and emits its security-related items."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        max_redirects: Optional[int] = None,
        user_agent: Optional[str] = None,
        max_entries: Optional[int] = None,
        classifier: Optional[Classifier] = None,
        parser: Optional[ContentParser] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize feed fetcher.

        Args:
            timeout_seconds: Upper bound for retrieving one feed
            max_redirects: Maximum redirects to follow
            user_agent: User-Agent header for HTTP requests
            max_entries: Entries classified per feed (0=unlimited)
            classifier: Classifier applied to every entry
            parser: Parser turning feedparser entries into RawFeedEntry
            client: Shared HTTP client; one is created per fetch if omitted
        """
        config = get_config()

        self.timeout_seconds = timeout_seconds or config.fetcher.timeout_seconds
        self.max_redirects = (
            max_redirects if max_redirects is not None else config.fetcher.max_redirects
        )
        self.user_agent = user_agent or config.fetcher.user_agent
        self.max_entries = (
            max_entries if max_entries is not None else config.fetcher.max_entries_per_feed
        )
        self.classifier = classifier or create_classifier()
        self.parser = parser or create_parser()
        self._client = client

        self.stats = FetchStats()

    async def fetch(self, source: FeedSource) -> list[SecurityItem]:
        """Fetch a feed and return its classified items (empty on failure)."""
        result = await self.fetch_feed(source)
        return result.items

    async def fetch_feed(self, source: FeedSource) -> FetchResult:
        """Fetch a single feed.

        Args:
            source: Feed to fetch

        Returns:
            FetchResult with classified items or error
        """
        start_time = time.time()
        feed_url = source.feed_url
        http_status = None

        logger.debug(f"Fetching feed: {source.title} ({feed_url})")

        try:
            response = await asyncio.wait_for(
                self._fetch_http(feed_url), timeout=self.timeout_seconds
            )
            http_status = response.status_code

            parsed = feedparser.parse(response.content)
            entries = list(parsed.get("entries", []))

            if parsed.get("bozo") and not entries:
                raise FeedFetchError(feed_url, f"Parse error: {parsed.get('bozo_exception')}")

            if self.max_entries and len(entries) > self.max_entries:
                entries = entries[: self.max_entries]

            items = self.build_items(source, entries)
            fetch_time = time.time() - start_time

            logger.info(
                f"Fetched {len(entries)} entries from {source.title}, "
                f"{len(items)} security related, in {fetch_time:.2f}s"
            )

            result = FetchResult(
                success=True,
                feed_url=feed_url,
                feed_title=source.title,
                entries_count=len(entries),
                items=items,
                fetch_time_seconds=fetch_time,
                http_status=http_status,
            )
            self.stats.add_result(result)
            return result

        except (asyncio.TimeoutError, httpx.TimeoutException):
            error = f"Timeout: no response within {self.timeout_seconds}s"
        except httpx.HTTPStatusError as e:
            http_status = e.response.status_code
            error = f"HTTP {http_status}: {e.request.url}"
        except httpx.RequestError as e:
            error = f"Request error: {type(e).__name__}: {e}"
        except FeedFetchError as e:
            error = e.reason
        except Exception as e:
            error = f"Unexpected error: {type(e).__name__}: {e}"

        logger.warning(f"Error fetching feed {source.title} ({feed_url}): {error}")

        result = FetchResult(
            success=False,
            feed_url=feed_url,
            feed_title=source.title,
            error=error,
            fetch_time_seconds=time.time() - start_time,
            http_status=http_status,
        )
        self.stats.add_result(result)
        return result

    def build_items(self, source: FeedSource, entries: list) -> list[SecurityItem]:
        """Classify parsed entries and keep the security-related ones.

        Args:
            source: Feed the entries came from
            entries: feedparser entries

        Returns:
            SecurityItem list, in feed order
        """
        items = []

        for raw in entries:
            try:
                entry = self.parser.parse_entry(raw)
            except (ValueError, TypeError, AttributeError) as e:
                logger.debug(f"Skipping malformed entry from {source.title}: {e}")
                continue

            category = self.classifier.classify(entry)
            if category is None:
                continue

            items.append(
                SecurityItem(
                    title=entry.title or "Untitled",
                    link=select_link(entry, source),
                    content=entry.content,
                    content_snippet=entry.content_snippet,
                    pub_date=entry.pub_date,
                    feed_title=source.title,
                    feed_url=source.feed_url,
                    feed_html=source.site_url,
                    category=category,
                    subcategory=self.classifier.subcategorize(entry),
                )
            )

        return items

    async def _fetch_http(self, url: str) -> httpx.Response:
        """Fetch URL with the HTTP client.

        Args:
            url: URL to fetch

        Returns:
            httpx Response

        Raises:
            httpx.TimeoutException: On timeout
            httpx.HTTPStatusError: On HTTP error
            httpx.RequestError: On network error (including too many redirects)
        """
        headers = {"User-Agent": self.user_agent}

        if self._client is not None:
            response = await self._client.get(url, headers=headers)
            response.raise_for_status()
            return response

        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            max_redirects=self.max_redirects,
        ) as client:
            response = await client.get(url, headers=headers)
            response.raise_for_status()
            return response


def create_fetcher(
    client: Optional[httpx.AsyncClient] = None,
    classifier: Optional[Classifier] = None,
) -> FeedFetcher:
    """Create a configured FeedFetcher instance.

    Args:
        client: Optional shared HTTP client
        classifier: Optional classifier override

    Returns:
        Configured FeedFetcher instance
    """
    return FeedFetcher(client=client, classifier=classifier)
