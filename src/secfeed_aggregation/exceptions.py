"""Exception hierarchy for the security feed aggregator."""


class SecFeedError(Exception):
    """Base class for all package errors."""


class FeedSourceError(SecFeedError):
    """The feed source list could not be loaded."""


class FeedFetchError(SecFeedError):
    """A single feed could not be retrieved or parsed."""

    def __init__(self, feed_url: str, reason: str):
        self.feed_url = feed_url
        self.reason = reason
        super().__init__(f"{feed_url}: {reason}")


class CacheUnavailableError(SecFeedError):
    """The external cache store is not reachable."""


class DeliveryError(SecFeedError):
    """A message could not be delivered to a destination."""


class SummarizerError(SecFeedError):
    """The summarization collaborator failed or returned unusable output."""
