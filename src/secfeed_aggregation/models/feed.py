"""
Feed source data model.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FeedSource(BaseModel):
    """A configured RSS/Atom endpoint, loaded once per aggregation run."""

    model_config = ConfigDict(frozen=True)

    title: str = Field("Untitled", description="Display title")
    feed_url: str = Field(..., min_length=1, max_length=2048, description="Feed URL")
    site_url: Optional[str] = Field(None, max_length=2048, description="Site URL")

    def __repr__(self) -> str:
        return f"<FeedSource(title='{self.title}', feed_url='{self.feed_url}')>"
