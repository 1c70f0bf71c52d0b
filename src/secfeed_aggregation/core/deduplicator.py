"""
Cross-feed deduplication of security items.

The same story usually reaches several feeds, sometimes with tracking
parameters appended to the link and sometimes retitled. Items are
collapsed by canonical link, then by exact title, then by fuzzy title
match; within a duplicate group the earliest-published copy is kept.
"""

from dataclasses import dataclass, field
from typing import Optional

from secfeed_aggregation.config import get_config
from secfeed_aggregation.core.similarity import normalize_link, normalize_title, title_similarity
from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.models.item import SecurityItem

logger = get_logger(__name__)


def dedup_key(item: SecurityItem) -> str:
    """Index key of an item: its canonical link.

    Items without a usable link are keyed by title and source feed so that
    they are kept instead of silently collapsing into one another.
    """
    link = normalize_link(item.link)
    if link:
        return link
    return f"title:{normalize_title(item.title)}:{normalize_link(item.feed_url)}"


def is_earlier(candidate: SecurityItem, existing: SecurityItem) -> bool:
    """Whether ``candidate`` should replace ``existing``.

    Only a dated candidate can win, and only against an undated or strictly
    later item; ties keep the first-seen copy.
    """
    candidate_ts = candidate.timestamp
    existing_ts = existing.timestamp
    return candidate_ts > 0 and (existing_ts == 0 or candidate_ts < existing_ts)


@dataclass
class DedupStats:
    """Counters for one deduplication pass."""

    input_count: int = 0
    output_count: int = 0
    removed_by_link: int = 0
    removed_by_title: int = 0
    removed_by_similarity: int = 0
    replacements: int = 0

    @property
    def removed(self) -> int:
        return self.input_count - self.output_count


@dataclass
class DedupResult:
    """Deduplicated items plus the counters that produced them."""

    items: list[SecurityItem] = field(default_factory=list)
    stats: DedupStats = field(default_factory=DedupStats)


class _Index:
    """Link index with a title index pointing into it."""

    def __init__(self):
        self.by_key: dict[str, SecurityItem] = {}
        self.key_by_title: dict[str, str] = {}
        self.title_by_key: dict[str, str] = {}

    def insert(self, key: str, title: str, item: SecurityItem) -> None:
        self.by_key[key] = item
        self.set_title(key, title)

    def replace(self, old_key: str, new_key: str, item: SecurityItem) -> None:
        """Swap the item stored under ``old_key`` for ``item`` under ``new_key``.

        The replacement has no title entry until ``set_title`` is called.
        """
        self._drop_title(old_key)
        if old_key == new_key:
            # keeps the original output position
            self.by_key[new_key] = item
        else:
            del self.by_key[old_key]
            self.by_key[new_key] = item

    def remove(self, key: str) -> None:
        self._drop_title(key)
        del self.by_key[key]

    def match_title(self, title: str, threshold: float, exclude: Optional[str] = None):
        """Key of the entry whose title equals or resembles ``title``.

        Returns:
            ``(key, exact)`` for the first hit, or None
        """
        key = self.key_by_title.get(title)
        if key is not None and key != exclude:
            return key, True
        for existing_title, existing_key in self.key_by_title.items():
            if existing_key == exclude:
                continue
            if title_similarity(title, existing_title) > threshold:
                return existing_key, False
        return None

    def set_title(self, key: str, title: str) -> None:
        if title:
            self.key_by_title[title] = key
            self.title_by_key[key] = title

    def _drop_title(self, key: str) -> None:
        title = self.title_by_key.pop(key, None)
        if title is not None and self.key_by_title.get(title) == key:
            del self.key_by_title[title]


class Deduplicator:
    """Collapses duplicate items across feeds."""

    def __init__(
        self,
        similarity_threshold: Optional[float] = None,
        enabled: Optional[bool] = None,
    ):
        """Initialize deduplicator.

        Args:
            similarity_threshold: Title similarity strictly above which two
                titles are treated as the same story
            enabled: When False items pass through untouched
        """
        config = get_config()

        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else config.deduplicator.title_similarity_threshold
        )
        self.enabled = enabled if enabled is not None else config.deduplicator.enabled
        self.last_stats = DedupStats()

    @staticmethod
    def _count_title_hit(stats: DedupStats, exact: bool) -> None:
        if exact:
            stats.removed_by_title += 1
        else:
            stats.removed_by_similarity += 1

    def _settle(self, index: _Index, key: str, title: str, stats: DedupStats) -> None:
        """Merge a replacement with every other entry its title matches.

        A replacement brings a new title into the index, which may resemble
        entries the replaced item did not. Afterwards no two indexed titles
        match.
        """
        while title:
            match = index.match_title(title, self.similarity_threshold, exclude=key)
            if match is None:
                break

            other_key, exact = match
            self._count_title_hit(stats, exact)
            if not is_earlier(index.by_key[key], index.by_key[other_key]):
                index.remove(key)
                return
            index.remove(other_key)
            stats.replacements += 1

        index.set_title(key, title)

    def dedupe(self, items: list[SecurityItem]) -> list[SecurityItem]:
        """Return the deduplicated items; see ``deduplicate`` for counters."""
        return self.deduplicate(items).items

    def deduplicate(self, items: list[SecurityItem]) -> DedupResult:
        """Deduplicate items in input order.

        Args:
            items: Items from all feeds

        Returns:
            DedupResult with surviving items in first-insertion order
        """
        stats = DedupStats(input_count=len(items))

        if not self.enabled or not items:
            stats.output_count = len(items)
            self.last_stats = stats
            return DedupResult(items=list(items), stats=stats)

        index = _Index()

        for item in items:
            key = dedup_key(item)
            title = normalize_title(item.title)

            if key in index.by_key:
                stats.removed_by_link += 1
                if is_earlier(item, index.by_key[key]):
                    index.replace(key, key, item)
                    stats.replacements += 1
                    self._settle(index, key, title, stats)
                continue

            match = index.match_title(title, self.similarity_threshold) if title else None
            if match is None:
                index.insert(key, title, item)
                continue

            existing_key, exact = match
            self._count_title_hit(stats, exact)
            if is_earlier(item, index.by_key[existing_key]):
                index.replace(existing_key, key, item)
                stats.replacements += 1
                self._settle(index, key, title, stats)

        result = list(index.by_key.values())
        stats.output_count = len(result)
        self.last_stats = stats

        logger.debug(
            f"Deduplicated {stats.input_count} -> {stats.output_count} items "
            f"(link={stats.removed_by_link}, title={stats.removed_by_title}, "
            f"similar={stats.removed_by_similarity}, replaced={stats.replacements})"
        )

        return DedupResult(items=result, stats=stats)


def create_deduplicator(similarity_threshold: Optional[float] = None) -> Deduplicator:
    """Create a configured Deduplicator instance.

    Args:
        similarity_threshold: Override for the configured threshold

    Returns:
        Configured Deduplicator instance
    """
    return Deduplicator(similarity_threshold=similarity_threshold)
