"""Unit tests for Telegram delivery."""

import asyncio
import json

import httpx
import pytest

from secfeed_aggregation.delivery import (
    MessageInfo,
    TelegramClient,
    create_telegram_client,
    extract_message_info,
    forward_update,
    should_forward,
    verify_webhook_secret,
)
from secfeed_aggregation.exceptions import DeliveryError

TOKEN = "test-token"


class Recorder:
    """MockTransport handler recording requests."""

    def __init__(self, response=None, error=None):
        self.response = response or httpx.Response(200, json={"ok": True, "result": {}})
        self.error = error
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error(request)
        return self.response

    @property
    def payloads(self):
        return [json.loads(request.content) for request in self.requests]


def run_client(recorder, action):
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as http:
            return await action(TelegramClient(bot_token=TOKEN, client=http))

    return asyncio.run(_run())


class TestExtractMessageInfo:
    """Tests for extract_message_info."""

    @pytest.mark.parametrize(
        "field", ["message", "channel_post", "edited_message", "edited_channel_post"]
    )
    def test_message_fields(self, field):
        update = {"update_id": 1, field: {"message_id": 42, "chat": {"id": -100123}}}
        assert extract_message_info(update) == MessageInfo(from_chat_id=-100123, message_id=42)

    def test_first_field_wins(self):
        update = {
            "message": {"message_id": 1, "chat": {"id": 10}},
            "channel_post": {"message_id": 2, "chat": {"id": 20}},
        }
        assert extract_message_info(update).message_id == 1

    @pytest.mark.parametrize(
        "update",
        [
            None,
            "not a dict",
            {},
            {"callback_query": {"id": "x"}},
            {"message": {"chat": {"id": 10}}},
            {"message": {"message_id": 1}},
        ],
    )
    def test_no_message(self, update):
        assert extract_message_info(update) is None


class TestShouldForward:
    """Tests for loop prevention."""

    def test_forward_from_other_chat(self):
        assert should_forward(MessageInfo(from_chat_id=10, message_id=1), "-100123") is True

    def test_ignore_from_target(self):
        info = MessageInfo(from_chat_id=-100123, message_id=1)
        assert should_forward(info, "-100123") is False
        assert should_forward(info, -100123) is False

    def test_no_target(self):
        info = MessageInfo(from_chat_id=10, message_id=1)
        assert should_forward(info, None) is False
        assert should_forward(info, "") is False


class TestVerifyWebhookSecret:
    """Tests for verify_webhook_secret."""

    def test_no_secret_configured(self):
        assert verify_webhook_secret(None, None) is True

    def test_matching(self):
        assert verify_webhook_secret("s3cret", "s3cret") is True

    def test_mismatch_or_missing(self):
        assert verify_webhook_secret("wrong", "s3cret") is False
        assert verify_webhook_secret(None, "s3cret") is False


class TestTelegramClient:
    """Tests for TelegramClient."""

    def test_defaults_from_config(self):
        client = create_telegram_client()
        assert client.api_base == "https://api.telegram.org"
        assert client.parse_mode == "HTML"
        assert client.bot_token is None

    def test_send_message(self):
        recorder = Recorder()

        ok = run_client(recorder, lambda c: c.send_message("-100123", "<b>hi</b>"))

        assert ok is True
        request = recorder.requests[0]
        assert str(request.url) == f"https://api.telegram.org/bot{TOKEN}/sendMessage"
        assert recorder.payloads[0] == {
            "chat_id": "-100123",
            "text": "<b>hi</b>",
            "parse_mode": "HTML",
            "disable_web_page_preview": False,
        }

    def test_api_rejects(self):
        recorder = Recorder(
            httpx.Response(400, json={"ok": False, "description": "Bad Request: chat not found"})
        )
        assert run_client(recorder, lambda c: c.send_message(1, "hi")) is False

    def test_network_error(self):
        recorder = Recorder(error=lambda request: httpx.ConnectError("refused", request=request))
        assert run_client(recorder, lambda c: c.send_message(1, "hi")) is False

    def test_invalid_json(self):
        recorder = Recorder(httpx.Response(502, text="<html>Bad Gateway</html>"))
        assert run_client(recorder, lambda c: c.send_message(1, "hi")) is False

    def test_missing_token(self):
        client = TelegramClient()
        assert asyncio.run(client.send_message(1, "hi")) is False

    def test_call_raises_delivery_error(self):
        recorder = Recorder(
            httpx.Response(403, json={"ok": False, "description": "Forbidden: bot was kicked"})
        )

        with pytest.raises(DeliveryError, match="bot was kicked"):
            run_client(recorder, lambda c: c._call("sendMessage", {"chat_id": 1, "text": "hi"}))

    def test_forward_message(self):
        recorder = Recorder()

        ok = run_client(recorder, lambda c: c.forward_message(10, 42, "-100123"))

        assert ok is True
        assert str(recorder.requests[0].url).endswith("/forwardMessage")
        assert recorder.payloads[0] == {"chat_id": "-100123", "from_chat_id": 10, "message_id": 42}


class TestForwardUpdate:
    """Tests for forward_update."""

    def test_forwards_to_target(self):
        recorder = Recorder()
        update = {"message": {"message_id": 42, "chat": {"id": 10}}}

        result = run_client(recorder, lambda c: forward_update(update, c, "-100123"))

        assert result is True
        assert recorder.payloads[0]["from_chat_id"] == 10

    def test_uses_configured_target(self, default_config):
        default_config.telegram.forward_chat_id = "-100999"
        recorder = Recorder()
        update = {"channel_post": {"message_id": 7, "chat": {"id": 10}}}

        assert run_client(recorder, lambda c: forward_update(update, c)) is True
        assert recorder.payloads[0]["chat_id"] == "-100999"

    def test_ignores_target_chat(self):
        recorder = Recorder()
        update = {"message": {"message_id": 42, "chat": {"id": -100123}}}

        result = run_client(recorder, lambda c: forward_update(update, c, "-100123"))

        assert result is None
        assert recorder.requests == []

    def test_ignores_updates_without_message(self):
        recorder = Recorder()
        assert run_client(recorder, lambda c: forward_update({"update_id": 1}, c, "-100123")) is None

    def test_no_target_configured(self):
        recorder = Recorder()
        update = {"message": {"message_id": 42, "chat": {"id": 10}}}
        assert run_client(recorder, lambda c: forward_update(update, c)) is None
