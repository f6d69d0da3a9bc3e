"""
Transcode events service: domain-specific exceptions.

HTTP-facing exceptions use preset status codes and a ``reason`` (the error
kind reported to the sender) so that callers never need to specify these at
the call site.  ``shared.middleware.error_handler`` renders them as
``{"status": "error", "reason": ...}``.
"""
from fastapi import HTTPException, status


class ListenerError(HTTPException):
    reason: str = "InternalError"

    def __init__(self, status_code: int, detail: str, headers: dict[str, str] | None = None) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


# ── Validation ───────────────────────────────────────────────────────────────

class MalformedPayload(ListenerError):
    reason = "MalformedPayload"

    def __init__(self, detail: str = "Event payload is missing required fields.") -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)


class InconsistentEvent(ListenerError):
    reason = "InconsistentEvent"

    def __init__(self, detail: str = "Completed job reported no output files.") -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)


# ── Authentication ───────────────────────────────────────────────────────────

class Unauthorized(ListenerError):
    reason = "Unauthorized"

    def __init__(self) -> None:
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            "Webhook sender could not be authenticated.",
        )


# ── Storage ──────────────────────────────────────────────────────────────────

class StorageFailure(ListenerError):
    reason = "StorageFailure"

    def __init__(self) -> None:
        super().__init__(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Could not persist the transcode event.",
        )


class VideoNotFound(ListenerError):
    reason = "NotFound"

    def __init__(self) -> None:
        super().__init__(status.HTTP_404_NOT_FOUND, "Processed video not found.")


class WriteConflict(Exception):
    """A concurrent delivery committed a terminal state for the same job first."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Concurrent terminal write for job {job_id}")
        self.job_id = job_id


# ── Notifications ────────────────────────────────────────────────────────────

class DispatchFailure(Exception):
    """The side-channel notifier could not deliver a message."""
