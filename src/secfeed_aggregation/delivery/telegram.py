"""
Telegram Bot API delivery.

Only the two methods the aggregator needs are wrapped: ``sendMessage`` and
``forwardMessage``. The Bot API answers with a JSON envelope whose ``ok``
field is the sole success signal. Failures surface as ``DeliveryError``
inside the client; the public methods log them and report False.
"""

import hmac
from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx

from secfeed_aggregation.config import get_config
from secfeed_aggregation.exceptions import DeliveryError
from secfeed_aggregation.logger import get_logger

logger = get_logger(__name__)

ChatId = Union[int, str]

_MESSAGE_FIELDS = ("message", "channel_post", "edited_message", "edited_channel_post")


@dataclass(frozen=True)
class MessageInfo:
    """Origin of a message carried by a webhook update."""

    from_chat_id: ChatId
    message_id: int


def extract_message_info(update: Any) -> Optional[MessageInfo]:
    """Pull the chat id and message id out of a webhook update.

    Args:
        update: Decoded update JSON

    Returns:
        MessageInfo, or None when the update carries no message
    """
    if not isinstance(update, dict):
        return None

    for field_name in _MESSAGE_FIELDS:
        message = update.get(field_name)
        if not isinstance(message, dict):
            continue
        chat = message.get("chat") or {}
        chat_id = chat.get("id")
        message_id = message.get("message_id")
        if chat_id is None or message_id is None:
            continue
        return MessageInfo(from_chat_id=chat_id, message_id=int(message_id))

    return None


def should_forward(info: MessageInfo, target_chat_id: Optional[ChatId]) -> bool:
    """Whether a message should be forwarded to ``target_chat_id``.

    Messages that originate in the target chat are ignored to avoid loops.
    """
    if target_chat_id is None or str(target_chat_id) == "":
        return False
    return str(info.from_chat_id) != str(target_chat_id)


def verify_webhook_secret(header_value: Optional[str], secret: Optional[str]) -> bool:
    """Check the ``X-Telegram-Bot-Api-Secret-Token`` header.

    No configured secret means every request is accepted.
    """
    if not secret:
        return True
    if header_value is None:
        return False
    return hmac.compare_digest(header_value, secret)


class TelegramClient:
    """Minimal async Telegram Bot API client."""

    def __init__(
        self,
        bot_token: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        parse_mode: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            bot_token: Bot API token
            api_base: Bot API base URL
            timeout_seconds: Request timeout
            parse_mode: Default parse mode for sendMessage
            client: Shared HTTP client; one is created per call if omitted
        """
        config = get_config().telegram

        self.bot_token = bot_token or config.bot_token
        self.api_base = (api_base or config.api_base).rstrip("/")
        self.timeout_seconds = timeout_seconds or config.timeout_seconds
        self.parse_mode = parse_mode or config.parse_mode
        self._client = client

        if not self.bot_token:
            logger.warning("Telegram bot token not set, delivery will fail")

    def _method_url(self, method: str) -> str:
        return f"{self.api_base}/bot{self.bot_token}/{method}"

    async def send_message(
        self,
        chat_id: ChatId,
        text: str,
        parse_mode: Optional[str] = None,
        disable_web_page_preview: bool = False,
    ) -> bool:
        """Send one message.

        Returns:
            True when the API answered ``ok``
        """
        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": parse_mode or self.parse_mode,
            "disable_web_page_preview": disable_web_page_preview,
        }
        if await self._try_call("sendMessage", payload):
            logger.debug(f"Telegram message sent to {chat_id}")
            return True
        return False

    async def forward_message(
        self,
        from_chat_id: ChatId,
        message_id: int,
        to_chat_id: ChatId,
    ) -> bool:
        """Forward an existing message to another chat."""
        payload = {
            "chat_id": to_chat_id,
            "from_chat_id": from_chat_id,
            "message_id": message_id,
        }
        if await self._try_call("forwardMessage", payload):
            logger.info(f"Forwarded message {message_id} from {from_chat_id} to {to_chat_id}")
            return True
        return False

    async def _call(self, method: str, payload: dict) -> dict:
        """POST one Bot API method and return the decoded ``ok`` envelope.

        Raises:
            DeliveryError: On transport errors, invalid JSON or ``ok: false``
        """
        if not self.bot_token:
            raise DeliveryError(f"Cannot call {method}: bot token not configured")

        try:
            if self._client is not None:
                response = await self._client.post(self._method_url(method), json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(self._method_url(method), json=payload)
            result = response.json()
        except httpx.HTTPError as e:
            raise DeliveryError(f"Error calling Telegram {method}: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise DeliveryError(f"Telegram {method} returned invalid JSON: {e}") from e

        if isinstance(result, dict) and result.get("ok"):
            return result

        description = result.get("description") if isinstance(result, dict) else result
        raise DeliveryError(f"Telegram {method} failed (HTTP {response.status_code}): {description}")

    async def _try_call(self, method: str, payload: dict) -> bool:
        try:
            await self._call(method, payload)
        except DeliveryError as e:
            logger.error(str(e))
            return False
        return True


async def forward_update(
    update: Any,
    client: TelegramClient,
    target_chat_id: Optional[ChatId] = None,
) -> Optional[bool]:
    """Forward the message carried by a webhook update.

    Args:
        update: Decoded update JSON
        client: Telegram client
        target_chat_id: Destination chat (defaults to the configured one)

    Returns:
        True/False for the forward outcome, None when the update was ignored
        (no message, no target, or it came from the target chat)
    """
    target_chat_id = target_chat_id or get_config().telegram.forward_chat_id

    info = extract_message_info(update)
    if info is None:
        logger.debug("Update carries no message, ignoring")
        return None

    if not should_forward(info, target_chat_id):
        logger.info("Received message from forward target, ignoring to avoid loops")
        return None

    return await client.forward_message(info.from_chat_id, info.message_id, target_chat_id)


def create_telegram_client(client: Optional[httpx.AsyncClient] = None) -> TelegramClient:
    """Create a configured TelegramClient instance."""
    return TelegramClient(client=client)
