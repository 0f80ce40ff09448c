import json

import httpx
import pytest

from cronus.config.loader import TelegramConfig
from cronus.notify.telegram import LoggingNotifier, TelegramNotifier, split_message

CONFIG = TelegramConfig(bot_token="123:abc", chat_id="42")


def _recording_transport(responses):
    requests = []

    def handler(request):
        requests.append(request)
        status, body = responses[min(len(requests), len(responses)) - 1]
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler), requests


@pytest.mark.asyncio
async def test_send_posts_markdown_message():
    transport, requests = _recording_transport([(200, {"ok": True})])

    assert await TelegramNotifier(CONFIG, transport=transport).send("*hi*")

    (request,) = requests
    assert request.url == "https://api.telegram.org/bot123:abc/sendMessage"
    payload = json.loads(request.content)
    assert payload == {
        "chat_id": "42",
        "text": "*hi*",
        "disable_web_page_preview": True,
        "parse_mode": "Markdown",
    }


@pytest.mark.asyncio
async def test_markdown_rejection_retries_as_plain_text():
    transport, requests = _recording_transport(
        [(400, {"ok": False, "description": "can't parse entities"}), (200, {"ok": True})]
    )

    assert await TelegramNotifier(CONFIG, transport=transport).send("[broken")

    assert len(requests) == 2
    assert "parse_mode" not in json.loads(requests[1].content)


@pytest.mark.asyncio
async def test_server_error_is_reported_not_raised():
    transport, _ = _recording_transport([(502, {"ok": False})])
    assert not await TelegramNotifier(CONFIG, transport=transport).send("hello")


@pytest.mark.asyncio
async def test_network_error_is_reported_not_raised():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    notifier = TelegramNotifier(CONFIG, transport=httpx.MockTransport(handler))
    assert not await notifier.send("hello")


@pytest.mark.asyncio
async def test_unconfigured_notifier_does_not_send():
    transport, requests = _recording_transport([(200, {"ok": True})])
    assert not await TelegramNotifier(TelegramConfig(), transport=transport).send("hello")
    assert requests == []


@pytest.mark.asyncio
async def test_long_messages_are_split():
    transport, requests = _recording_transport([(200, {"ok": True})])
    text = "\n".join("line %04d" % index for index in range(1000))

    assert await TelegramNotifier(CONFIG, transport=transport).send(text)

    sent = [json.loads(request.content)["text"] for request in requests]
    assert len(sent) > 1
    assert "".join(sent) == text
    assert all(len(chunk) <= 4096 for chunk in sent)


def test_split_message_hard_splits_oversized_lines():
    chunks = split_message("a" * 10 + "\nb", limit=4)
    assert "".join(chunks) == "a" * 10 + "\nb"
    assert all(len(chunk) <= 4 for chunk in chunks)


@pytest.mark.asyncio
async def test_logging_notifier_records_messages():
    notifier = LoggingNotifier()
    assert await notifier.send("dry")
    assert notifier.sent == ["dry"]
