"""
Notification dispatcher: best-effort alerts about reconciliation outcomes.

``dispatch`` only schedules work: each message is sent on its own asyncio
task, bounded by a timeout, and every failure is logged and dropped. A slow
or unreachable chat channel never delays or fails a webhook response.
"""
from __future__ import annotations

import asyncio
import logging

from app.exceptions import DispatchFailure
from app.notify.chat import Notifier
from app.transcode.constants import Outcome, VideoStatus
from app.transcode.reconciler import ReconcileResult
from app.transcode.validator import TranscodeEvent

logger = logging.getLogger(__name__)


def format_message(result: ReconcileResult, event: TranscodeEvent) -> str:
    if result.outcome is Outcome.ORPHAN:
        return (
            f":warning: Transcode job `{event.job_id}` completed but no post references it. "
            f"Outputs: {len(event.output_paths)} file(s)."
        )
    if result.video_status is VideoStatus.FAILED:
        detail = event.error_message or "Unknown transcoding error"
        code = f" (code {event.error_code})" if event.error_code is not None else ""
        return f":x: Transcode job `{event.job_id}` failed{code}: {detail}"

    message = f":white_check_mark: Transcode job `{event.job_id}` completed"
    if result.post_id is not None:
        state = "published" if result.post_published else "updated"
        message += f", post `{result.post_id}` {state}"
    if event.resolution:
        message += f" [{event.resolution}]"
    return message + "."


class NotificationDispatcher:
    def __init__(self, notifier: Notifier, *, timeout: float = 5.0) -> None:
        self._notifier = notifier
        self._timeout = timeout
        self._pending: set[asyncio.Task[None]] = set()

    def dispatch(self, result: ReconcileResult, event: TranscodeEvent) -> None:
        """Schedule an alert for a reportable outcome. Never raises, never blocks."""
        if not result.is_reportable:
            return
        text = format_message(result, event)
        task = asyncio.create_task(self._send(text, event.job_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, text: str, job_id: str) -> None:
        try:
            await asyncio.wait_for(self._notifier.send(text), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error("Notification for job %s abandoned after %.1fs", job_id, self._timeout)
        except DispatchFailure as exc:
            logger.error("Notification for job %s failed: %s", job_id, exc)
        except Exception:
            logger.exception("Unexpected error sending notification for job %s", job_id)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for in-flight notifications; each is already bounded by the timeout."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
