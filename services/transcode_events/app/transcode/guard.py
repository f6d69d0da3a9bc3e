"""
Transcode events: duplicate delivery detection.

MediaConvert events arrive at-least-once and unordered. The first terminal
status committed for a job wins; every later delivery for that job is a
duplicate. ``JobLocks`` serialises deliveries for the same job inside one
process; across processes the store's compare-and-set is authoritative.
"""
from __future__ import annotations

import asyncio
import enum
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from app.transcode.models import ProcessedVideo


class Delivery(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DUPLICATE = "duplicate"


def check_delivery(existing: ProcessedVideo | None) -> Delivery:
    """Decide how a delivery for a job with this stored record should proceed."""
    if existing is None:
        return Delivery.CREATE
    if existing.status.is_terminal:
        return Delivery.DUPLICATE
    return Delivery.UPDATE


class JobLocks:
    """Per-job-id asyncio locks, dropped once no task holds or awaits them."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, job_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(job_id, asyncio.Lock())
        self._waiters[job_id] = self._waiters.get(job_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[job_id] -= 1
            if self._waiters[job_id] == 0:
                del self._waiters[job_id]
                del self._locks[job_id]

    def __len__(self) -> int:
        return len(self._locks)
