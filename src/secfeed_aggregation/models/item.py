"""
Feed entry and security item data models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from secfeed_aggregation.utils.date_utils import parse_pub_date, pub_timestamp


class Category(str, Enum):
    """Top-level security classification."""

    BLOCKCHAIN_ATTACK = "blockchain_attack"
    VULNERABILITY_DISCLOSURE = "vulnerability_disclosure"
    EXPLOIT = "exploit"
    SMART_CONTRACT_BUG = "smart_contract_bug"


class Subcategory(str, Enum):
    """Finer-grained tag, orthogonal to the category."""

    BRIDGE_HACK = "bridge_hack"
    WALLET_HACK = "wallet_hack"
    STOLEN_FUNDS = "stolen_funds"
    PUBLIC_CHAIN_ATTACK = "public_chain_attack"
    CODE_BUG = "code_bug"


class RawFeedEntry(BaseModel):
    """Parsed feed entry as it comes off the wire.

    Every field is optional; entries are validated at the fetch boundary and
    never retained after classification.
    """

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    link: Optional[str] = None
    guid: Optional[str] = None
    enclosure_url: Optional[str] = None
    content: Optional[str] = None
    content_snippet: Optional[str] = None
    pub_date: Optional[str] = None


class SecurityItem(BaseModel):
    """A feed entry classified into the security taxonomy."""

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    title: str = Field("Untitled", min_length=1, description="Entry title")
    link: str = Field("", description="Best available link")
    content: Optional[str] = Field(None, description="Entry content (may be HTML)")
    content_snippet: Optional[str] = Field(None, description="Plain-text content")
    pub_date: Optional[str] = Field(None, description="Raw publish date string")

    # Provenance
    feed_title: str = Field("", description="Source feed title")
    feed_url: str = Field("", description="Source feed URL")
    feed_html: Optional[str] = Field(None, description="Source site URL")

    category: Category
    subcategory: Optional[Subcategory] = None

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, v: Optional[str]) -> str:
        """Substitute a placeholder for missing titles."""
        if v is None or not str(v).strip():
            return "Untitled"
        return v

    @property
    def published_at(self) -> Optional[datetime]:
        """Parsed publish date, or None."""
        return parse_pub_date(self.pub_date)

    @property
    def timestamp(self) -> float:
        """Publish date as epoch seconds, 0.0 when missing or unparseable."""
        return pub_timestamp(self.pub_date)

    def __repr__(self) -> str:
        return f"<SecurityItem(category={self.category.value}, title='{self.title[:40]}')>"
