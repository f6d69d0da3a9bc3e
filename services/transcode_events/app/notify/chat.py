"""
Chat webhook notifier: async httpx REST call (Slack/Mattermost style
``{"text": ...}`` incoming webhook).

``send`` raises ``DispatchFailure`` on any delivery problem; the dispatcher
decides what to do with it so the request path never sees it.
"""
from __future__ import annotations

import logging
from typing import Protocol

import httpx

from app.exceptions import DispatchFailure

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, text: str) -> None: ...


class ChatWebhookNotifier:
    def __init__(self, webhook_url: str, *, timeout: float = 10.0) -> None:
        self._webhook_url = webhook_url
        self._timeout = timeout

    async def send(self, text: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                r = await client.post(self._webhook_url, json={"text": text})
        except httpx.HTTPError as exc:
            raise DispatchFailure(f"Chat webhook request failed: {exc}") from exc
        if r.status_code >= 400:
            raise DispatchFailure(f"Chat webhook error {r.status_code}: {r.text[:300]}")


class LogNotifier:
    """Used when no chat webhook is configured."""

    async def send(self, text: str) -> None:
        logger.info("Notification (no chat webhook configured): %s", text)


def build_notifier(webhook_url: str, *, timeout: float) -> Notifier:
    if not webhook_url:
        return LogNotifier()
    return ChatWebhookNotifier(webhook_url, timeout=timeout)
