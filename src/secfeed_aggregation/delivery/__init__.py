"""Message delivery to the chat channel."""

from secfeed_aggregation.delivery.telegram import (
    MessageInfo,
    TelegramClient,
    create_telegram_client,
    extract_message_info,
    forward_update,
    should_forward,
    verify_webhook_secret,
)

__all__ = [
    "MessageInfo",
    "TelegramClient",
    "create_telegram_client",
    "extract_message_info",
    "forward_update",
    "should_forward",
    "verify_webhook_secret",
]
