"""
Webhook listener: request dependencies.

Everything the listener needs is built once in ``create_app`` and kept on
``app.state``; these accessors hand it to the routes so nothing below the
router reaches for module-level state.
"""
from fastapi import Depends, Request

from app.config import Settings
from app.listener.auth import WebhookAuthenticator
from app.notify.dispatcher import NotificationDispatcher
from app.transcode.guard import JobLocks


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_job_locks(request: Request) -> JobLocks:
    return request.app.state.job_locks


def get_authenticator(request: Request) -> WebhookAuthenticator:
    return request.app.state.authenticator


async def authenticated_body(
    request: Request,
    authenticator: WebhookAuthenticator = Depends(get_authenticator),
) -> bytes:
    """Raw request body, after the configured authenticator accepted the sender."""
    body = await request.body()
    await authenticator.verify(request, body)
    return body
