"""
Global slowapi rate limiter for the webhook listener.

Storage: Redis when REDIS_URL is set, in-memory otherwise (local dev).
Disabled in development and test environments. ``configure_rate_limit``
applies the app's settings once at startup.
"""
import os

from fastapi import Request, status
from fastapi.responses import Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.config import Settings
from shared.middleware.error_handler import error_envelope

UNLIMITED_ENVS = ("development", "test")

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=os.getenv("REDIS_URL", "memory://"),
    enabled=os.getenv("ENV_NAME", "development") not in UNLIMITED_ENVS,
)

_webhook_limit: str = Settings.model_fields["rate_limit"].default


def configure_rate_limit(settings: Settings) -> None:
    global _webhook_limit
    _webhook_limit = settings.rate_limit
    limiter.enabled = settings.env_name not in UNLIMITED_ENVS


def webhook_rate_limit() -> str:
    return _webhook_limit


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    return error_envelope(
        "RateLimited",
        status.HTTP_429_TOO_MANY_REQUESTS,
        headers={"Retry-After": "60"},
    )
