import asyncio
import json
import logging
import uuid

import httpx
import pytest
import respx

from app.exceptions import DispatchFailure
from app.notify.chat import ChatWebhookNotifier, LogNotifier, build_notifier
from app.notify.dispatcher import NotificationDispatcher, format_message
from app.transcode.constants import Outcome, VideoStatus
from app.transcode.reconciler import ReconcileResult
from app.transcode.validator import parse_transcode_event

CHAT_URL = "https://chat.example.test/hooks/transcode"


class SlowNotifier:
    async def send(self, text: str) -> None:
        await asyncio.sleep(10)


def _completed(**kwargs) -> ReconcileResult:
    return ReconcileResult(
        job_id="job-1",
        outcome=kwargs.pop("outcome", Outcome.CREATED),
        video_status=kwargs.pop("video_status", VideoStatus.COMPLETE),
        **kwargs,
    )


# ── Formatting ────────────────────────────────────────────────────────────────

def test_format_published(make_event) -> None:
    post_id = uuid.uuid4()
    event = parse_transcode_event(make_event(job_id="job-1"))
    text = format_message(
        _completed(post_found=True, post_updated=True, post_published=True, post_id=post_id),
        event,
    )
    assert text.startswith(":white_check_mark:")
    assert f"post `{post_id}` published" in text
    assert "[1080p]" in text


def test_format_failed(make_event) -> None:
    event = parse_transcode_event(
        make_event(job_id="job-1", status="ERROR", errorCode=1010, errorMessage="Unsupported codec")
    )
    text = format_message(_completed(video_status=VideoStatus.FAILED), event)
    assert text == ":x: Transcode job `job-1` failed (code 1010): Unsupported codec"


def test_format_orphan(make_event) -> None:
    event = parse_transcode_event(make_event(job_id="job-1"))
    text = format_message(_completed(outcome=Outcome.ORPHAN), event)
    assert text.startswith(":warning:")
    assert "4 file(s)" in text


# ── Dispatch ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_dispatch_sends_reportable_outcomes(notifier, make_event) -> None:
    dispatcher = NotificationDispatcher(notifier, timeout=1)
    dispatcher.dispatch(_completed(), parse_transcode_event(make_event(job_id="job-1")))
    await dispatcher.drain()
    assert len(notifier.messages) == 1
    assert dispatcher.pending == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("outcome", [Outcome.DUPLICATE, Outcome.IGNORED])
async def test_dispatch_skips_quiet_outcomes(notifier, make_event, outcome: Outcome) -> None:
    dispatcher = NotificationDispatcher(notifier, timeout=1)
    dispatcher.dispatch(_completed(outcome=outcome), parse_transcode_event(make_event()))
    await dispatcher.drain()
    assert notifier.messages == []


@pytest.mark.asyncio
async def test_slow_notifier_is_abandoned(make_event, caplog) -> None:
    dispatcher = NotificationDispatcher(SlowNotifier(), timeout=0.05)
    with caplog.at_level(logging.ERROR, logger="app.notify.dispatcher"):
        dispatcher.dispatch(_completed(), parse_transcode_event(make_event(job_id="job-1")))
        await asyncio.wait_for(dispatcher.drain(), timeout=1)
    assert "abandoned" in caplog.text


@pytest.mark.asyncio
@respx.mock
async def test_chat_webhook_error_is_logged_and_dropped(make_event, caplog) -> None:
    respx.post(CHAT_URL).mock(return_value=httpx.Response(500, text="upstream down"))
    dispatcher = NotificationDispatcher(ChatWebhookNotifier(CHAT_URL), timeout=1)
    with caplog.at_level(logging.ERROR, logger="app.notify.dispatcher"):
        dispatcher.dispatch(_completed(), parse_transcode_event(make_event(job_id="job-1")))
        await dispatcher.drain()
    assert "failed" in caplog.text
    assert "500" in caplog.text


# ── Chat notifier ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
@respx.mock
async def test_chat_notifier_posts_text() -> None:
    route = respx.post(CHAT_URL).mock(return_value=httpx.Response(200, text="ok"))
    await ChatWebhookNotifier(CHAT_URL).send("hello")
    assert route.called
    assert json.loads(route.calls.last.request.content) == {"text": "hello"}


@pytest.mark.asyncio
@respx.mock
async def test_chat_notifier_unreachable_raises_dispatch_failure() -> None:
    respx.post(CHAT_URL).mock(side_effect=httpx.ConnectError("connection refused"))
    with pytest.raises(DispatchFailure):
        await ChatWebhookNotifier(CHAT_URL).send("hello")


def test_build_notifier_without_url_logs_only() -> None:
    assert isinstance(build_notifier("", timeout=1), LogNotifier)
    assert isinstance(build_notifier(CHAT_URL, timeout=1), ChatWebhookNotifier)
