"""Data models for the security feed aggregator."""

from secfeed_aggregation.models.feed import FeedSource
from secfeed_aggregation.models.item import (
    Category,
    RawFeedEntry,
    SecurityItem,
    Subcategory,
)

__all__ = [
    "FeedSource",
    "RawFeedEntry",
    "SecurityItem",
    "Category",
    "Subcategory",
]
