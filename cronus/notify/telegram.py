"""Telegram Bot API transport."""
from __future__ import annotations

from typing import List, Optional

import httpx

from cronus.config.loader import TelegramConfig
from cronus.util.logging_utils import get_logger

MAX_MESSAGE_LENGTH = 4096


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split on line boundaries so each chunk fits Telegram's size limit."""

    if len(text) <= limit:
        return [text]
    chunks: List[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        if len(current) + len(line) > limit:
            chunks.append(current)
            current = ""
        current += line
    if current:
        chunks.append(current)
    return chunks


class TelegramNotifier:
    def __init__(
        self,
        config: TelegramConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._logger = get_logger(__name__)

    async def send(self, text: str) -> bool:
        """Deliver ``text``; failures are logged and reported as False."""

        if not self._config.is_configured:
            self._logger.warning("Telegram not configured (set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID)")
            return False
        try:
            async with httpx.AsyncClient(
                timeout=self._config.request_timeout_sec, transport=self._transport
            ) as client:
                for chunk in split_message(text):
                    if not await self._send_chunk(client, chunk):
                        return False
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.error("Error sending Telegram message: %s", exc)
            return False
        self._logger.info("Telegram notification sent!")
        return True

    async def _send_chunk(self, client: httpx.AsyncClient, text: str) -> bool:
        url = f"{self._config.api_base}/bot{self._config.bot_token}/sendMessage"
        parse_modes = [self._config.parse_mode, None] if self._config.parse_mode else [None]
        for parse_mode in parse_modes:
            payload = {
                "chat_id": self._config.chat_id,
                "text": text,
                "disable_web_page_preview": self._config.disable_web_page_preview,
            }
            if parse_mode:
                payload["parse_mode"] = parse_mode
            response = await client.post(url, json=payload)
            if response.status_code == 400 and parse_mode:
                self._logger.debug("%s parse failed, retrying as plain text", parse_mode)
                continue
            if response.is_error:
                self._logger.error("Telegram API error %s: %s", response.status_code, response.text)
                return False
            return bool(response.json().get("ok"))
        return False


class LoggingNotifier:
    """Dry-run transport: logs instead of sending."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self.sent: List[str] = []

    async def send(self, text: str) -> bool:
        self.sent.append(text)
        self._logger.info("Dry run, message not sent:\n%s", text)
        return True


__all__ = ["LoggingNotifier", "MAX_MESSAGE_LENGTH", "TelegramNotifier", "split_message"]
