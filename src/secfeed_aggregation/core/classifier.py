"""
Keyword classifier for feed entries.

Applies the taxonomy tables to the lower-cased title and body of an entry.
Classification is a pure function of the text.
"""

from typing import Optional, Union

from secfeed_aggregation.core.taxonomy import (
    CATEGORY_RULES,
    SUBCATEGORY_RULES,
    KeywordRule,
    first_match,
)
from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.models.item import Category, RawFeedEntry, SecurityItem, Subcategory

logger = get_logger(__name__)

Classifiable = Union[RawFeedEntry, SecurityItem]


def combined_text(
    title: Optional[str],
    content: Optional[str] = None,
    content_snippet: Optional[str] = None,
) -> str:
    """Lower-cased ``title`` and body joined with a single space."""
    body = content or content_snippet or ""
    return f"{(title or '').lower()} {body.lower()}"


class Classifier:
    """Assigns a category and an optional subcategory to feed entries."""

    def __init__(
        self,
        category_rules: tuple[KeywordRule, ...] = CATEGORY_RULES,
        subcategory_rules: tuple[KeywordRule, ...] = SUBCATEGORY_RULES,
    ) -> None:
        self.category_rules = category_rules
        self.subcategory_rules = subcategory_rules

    @staticmethod
    def _text_of(entry: Classifiable) -> str:
        return combined_text(entry.title, entry.content, entry.content_snippet)

    def classify_text(self, text: str) -> Optional[Category]:
        """Category for already combined, lower-cased text."""
        label = first_match(self.category_rules, text)
        return Category(label) if label else None

    def subcategorize_text(self, text: str) -> Optional[Subcategory]:
        """Subcategory for already combined, lower-cased text."""
        label = first_match(self.subcategory_rules, text)
        return Subcategory(label) if label else None

    def classify(self, entry: Classifiable) -> Optional[Category]:
        """Category of an entry, or None when it is not security related.

        Args:
            entry: Raw entry or security item

        Returns:
            First matching category in priority order
        """
        return self.classify_text(self._text_of(entry))

    def subcategorize(self, entry: Classifiable) -> Optional[Subcategory]:
        """Subcategory of an entry, independent of its category."""
        return self.subcategorize_text(self._text_of(entry))

    def is_security_related(self, entry: Classifiable) -> bool:
        return self.classify(entry) is not None


def create_classifier() -> Classifier:
    """Create a Classifier with the built-in taxonomy."""
    return Classifier()
