"""
Webhook sender authentication.

An authenticator is any object with ``async verify(request, body)`` that
raises ``Unauthorized`` to reject the delivery. The router depends on one
through ``app.state``; the guard and reconciler never see it, so adding a
new scheme (mTLS header, SigV4, ...) is a new class plus a settings value.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Protocol

from starlette.requests import Request

from app.config import Settings
from app.exceptions import Unauthorized

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Webhook-Secret"
SIGNATURE_HEADER = "X-Webhook-Signature"


class WebhookAuthenticator(Protocol):
    async def verify(self, request: Request, body: bytes) -> None: ...


class AllowAllAuthenticator:
    async def verify(self, request: Request, body: bytes) -> None:
        return None


class SharedSecretAuthenticator:
    """Sender passes the shared secret verbatim in ``X-Webhook-Secret``."""

    def __init__(self, secret: str, header: str = SECRET_HEADER) -> None:
        self._secret = secret.encode()
        self._header = header

    async def verify(self, request: Request, body: bytes) -> None:
        presented = request.headers.get(self._header, "")
        if not presented or not hmac.compare_digest(presented.encode(), self._secret):
            logger.warning("Rejected webhook: missing or wrong %s header", self._header)
            raise Unauthorized()


class HmacSignatureAuthenticator:
    """Sender signs the raw body with HMAC-SHA256 and sends the hex digest.

    Accepts both ``<hex>`` and ``sha256=<hex>`` header values.
    """

    def __init__(self, secret: str, header: str = SIGNATURE_HEADER) -> None:
        self._secret = secret.encode()
        self._header = header

    def sign(self, body: bytes) -> str:
        return hmac.new(self._secret, body, hashlib.sha256).hexdigest()

    async def verify(self, request: Request, body: bytes) -> None:
        presented = request.headers.get(self._header, "")
        if presented.startswith("sha256="):
            presented = presented[len("sha256="):]
        if not presented or not hmac.compare_digest(presented, self.sign(body)):
            logger.warning("Rejected webhook: invalid %s", self._header)
            raise Unauthorized()


def build_authenticator(settings: Settings) -> WebhookAuthenticator:
    mode = settings.listener_auth_mode
    if mode != "none" and not settings.listener_webhook_secret:
        raise ValueError(f"LISTENER_WEBHOOK_SECRET is required for auth mode {mode!r}")
    if mode == "shared_secret":
        return SharedSecretAuthenticator(settings.listener_webhook_secret)
    if mode == "hmac":
        return HmacSignatureAuthenticator(settings.listener_webhook_secret)
    logger.warning("Webhook listener is running WITHOUT sender authentication")
    return AllowAllAuthenticator()
