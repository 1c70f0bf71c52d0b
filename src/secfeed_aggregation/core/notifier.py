"""
Digest delivery to every configured chat, with push-state bookkeeping.

The digest text is built once per batch (AI summary, or the plain
formatter as fallback), chunked, and sent to each destination in turn.
Items are marked as pushed only when every destination received every
chunk; a partial failure leaves them eligible for the next run.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from secfeed_aggregation.config import get_config
from secfeed_aggregation.core.formatter import format_digest, split_message
from secfeed_aggregation.core.push_state import PushStateTracker
from secfeed_aggregation.core.summarizer import AISummarizer
from secfeed_aggregation.delivery.telegram import ChatId, TelegramClient
from secfeed_aggregation.exceptions import DeliveryError
from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.models.item import SecurityItem

logger = get_logger(__name__)


@dataclass
class DeliveryResult:
    """Outcome of delivering one digest to one destination."""

    chat_id: ChatId
    success: bool
    chunks_sent: int = 0
    chunks_total: int = 0
    error: Optional[str] = None

    def __post_init__(self):
        if self.success and self.error:
            raise ValueError("Successful delivery cannot have an error")


@dataclass
class NotifyResult:
    """Outcome of one push round."""

    success: bool
    candidates: int = 0
    already_pushed: int = 0
    sent: int = 0
    marked: bool = False
    deliveries: list[DeliveryResult] = field(default_factory=list)

    @property
    def any_delivered(self) -> bool:
        return any(delivery.success for delivery in self.deliveries)


class Notifier:
    """Sends digests to chat destinations and records what was pushed."""

    def __init__(
        self,
        delivery: TelegramClient,
        chat_ids: list[ChatId],
        push_state: PushStateTracker,
        summarizer: Optional[AISummarizer] = None,
        max_message_length: Optional[int] = None,
        chunk_delay_seconds: Optional[float] = None,
        ttl_hours: Optional[int] = None,
        tz_name: Optional[str] = None,
    ):
        """Initialize notifier.

        Args:
            delivery: Messaging client with ``send_message(chat_id, text)``
            chat_ids: Destinations
            push_state: Tracker recording pushed items
            summarizer: Optional AI summarizer; the plain digest is the fallback
            max_message_length: Chunk size limit
            chunk_delay_seconds: Pause between chunks to one destination
            ttl_hours: Expiry passed to the tracker when marking
            tz_name: Timezone used by the plain digest
        """
        config = get_config()

        self.delivery = delivery
        self.chat_ids = list(chat_ids)
        self.push_state = push_state
        self.summarizer = summarizer
        self.max_message_length = max_message_length or config.telegram.max_message_length
        self.chunk_delay_seconds = (
            chunk_delay_seconds
            if chunk_delay_seconds is not None
            else config.telegram.chunk_delay_seconds
        )
        self.ttl_hours = ttl_hours or config.push.ttl_hours
        self.tz_name = tz_name or config.telegram.display_timezone

        self.last_deliveries: list[DeliveryResult] = []
        self.last_marked = False

    async def build_message(self, items: list[SecurityItem], time_range: str) -> str:
        """Digest text for a batch: AI summary when available, else plain."""
        if self.summarizer is not None:
            result = await self.summarizer.summarize(items, time_range)
            if result.success and result.summary:
                return result.summary
            logger.warning(f"Summarizer unavailable, using plain digest: {result.error}")

        return format_digest(items, time_range, tz_name=self.tz_name)

    async def deliver(self, chat_id: ChatId, chunks: list[str]) -> DeliveryResult:
        """Send all chunks to one destination, stopping at the first failure."""
        total = len(chunks)

        for index, chunk in enumerate(chunks):
            try:
                sent = await self.delivery.send_message(chat_id, chunk)
            except DeliveryError as e:
                logger.error(f"Error pushing to chat {chat_id}: {e}")
                return DeliveryResult(
                    chat_id=chat_id, success=False, chunks_sent=index, chunks_total=total,
                    error=f"{type(e).__name__}: {e}",
                )

            if not sent:
                logger.error(f"Failed to push chunk {index + 1}/{total} to chat {chat_id}")
                return DeliveryResult(
                    chat_id=chat_id, success=False, chunks_sent=index, chunks_total=total,
                    error=f"Chunk {index + 1} rejected",
                )

            if index < total - 1 and self.chunk_delay_seconds > 0:
                await asyncio.sleep(self.chunk_delay_seconds)

        logger.info(f"Push to chat {chat_id} completed ({total} chunks)")
        return DeliveryResult(chat_id=chat_id, success=True, chunks_sent=total, chunks_total=total)

    async def notify(self, items: list[SecurityItem], time_range: str) -> bool:
        """Deliver a digest of ``items`` to every destination.

        Args:
            items: Items to announce
            time_range: Human-readable window label

        Returns:
            True when every destination received every chunk (or nothing
            needed sending)
        """
        self.last_deliveries = []
        self.last_marked = False

        if not items:
            logger.info("No new items to push")
            return True

        if not self.chat_ids:
            logger.warning("No chat destinations configured, nothing delivered")
            return False

        message = await self.build_message(items, time_range)
        chunks = split_message(message, self.max_message_length)

        logger.info(
            f"Pushing {len(items)} items to {len(self.chat_ids)} destinations "
            f"in {len(chunks)} chunks"
        )

        for chat_id in self.chat_ids:
            self.last_deliveries.append(await self.deliver(chat_id, chunks))

        all_success = all(delivery.success for delivery in self.last_deliveries)
        if all_success:
            self.last_marked = await self.push_state.mark_pushed(items, ttl_hours=self.ttl_hours)
        else:
            failed = [str(d.chat_id) for d in self.last_deliveries if not d.success]
            logger.warning(f"Delivery failed for {', '.join(failed)}; items not marked as pushed")

        return all_success

    async def push_new(self, items: list[SecurityItem], time_range: str) -> NotifyResult:
        """Push the items that were not pushed before.

        Args:
            items: Candidate items
            time_range: Human-readable window label

        Returns:
            NotifyResult with counts and per-destination outcomes
        """
        unpushed = await self.push_state.filter_unpushed(items)
        result = NotifyResult(
            success=True,
            candidates=len(items),
            already_pushed=len(items) - len(unpushed),
        )

        if not unpushed:
            logger.info("All items have already been pushed, skipping")
            return result

        result.success = await self.notify(unpushed, time_range)
        result.deliveries = list(self.last_deliveries)
        result.marked = self.last_marked
        result.sent = len(unpushed) if result.any_delivered else 0
        return result


def create_notifier(
    delivery: TelegramClient,
    push_state: PushStateTracker,
    summarizer: Optional[AISummarizer] = None,
) -> Notifier:
    """Create a Notifier for the configured chat destinations."""
    return Notifier(
        delivery=delivery,
        chat_ids=get_config().telegram.chat_ids,
        push_state=push_state,
        summarizer=summarizer,
    )
