"""Notification sinks: Slack-compatible webhook, Telegram bot and console."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import IO, Iterable

import requests
from telegram import Bot
from telegram.error import TelegramError

from .errors import NotificationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0


class SlackWebhookSink:
    """Post messages to an incoming webhook as ``{"text": ...}`` JSON."""

    def __init__(self, webhook_url: str, timeout: float = DEFAULT_TIMEOUT_S) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout

    def send(self, text: str) -> None:
        try:
            resp = requests.post(
                self.webhook_url,
                json={"text": text},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise NotificationError(f"Slack POST failed: {exc}") from exc
        if not resp.ok:
            snippet = resp.text[:200].replace("\n", " ")
            raise NotificationError(
                f"Slack POST failed: HTTP {resp.status_code}: {snippet}"
            )


class TelegramSink:
    """Send messages to one chat through the Telegram Bot API."""

    def __init__(self, token: str, chat_id: int | str) -> None:
        self.token = token
        self.chat_id = chat_id

    async def _send(self, text: str) -> None:
        async with Bot(self.token) as bot:
            await bot.send_message(chat_id=self.chat_id, text=text)

    def send(self, text: str) -> None:
        try:
            asyncio.run(self._send(text))
        except TelegramError as exc:
            raise NotificationError(f"Telegram send failed: {exc}") from exc


class ConsoleSink:
    """Print alerts for an operator watching the terminal (or cron mail)."""

    def __init__(self, stream: IO[str] | None = None) -> None:
        self.stream = stream

    def send(self, text: str) -> None:
        print(f"ALERT: {text}", file=self.stream or sys.stdout)


class FanoutSink:
    """Deliver to every sink; fail only when none of them succeeded."""

    def __init__(self, sinks: Iterable[object]) -> None:
        self.sinks = list(sinks)

    def send(self, text: str) -> None:
        if not self.sinks:
            return
        errors: list[str] = []
        for sink in self.sinks:
            try:
                sink.send(text)  # type: ignore[attr-defined]
            except NotificationError as e:
                logger.warning("%s failed: %s", type(sink).__name__, e)
                errors.append(str(e))
        if len(errors) == len(self.sinks):
            raise NotificationError("; ".join(errors))


def build_remote_sinks(
    slack_webhook: str | None,
    telegram_token: str | None,
    telegram_chat_id: str | None,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> list[object]:
    sinks: list[object] = []
    if slack_webhook:
        sinks.append(SlackWebhookSink(slack_webhook, timeout=timeout))
    if telegram_token and telegram_chat_id:
        sinks.append(TelegramSink(telegram_token, telegram_chat_id))
    elif telegram_token or telegram_chat_id:
        logger.warning(
            "Telegram needs both a bot token and a chat id; Telegram alerts disabled"
        )
    return sinks


__all__ = [
    "ConsoleSink",
    "FanoutSink",
    "SlackWebhookSink",
    "TelegramSink",
    "build_remote_sinks",
]
