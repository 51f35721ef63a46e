"""Fire-and-forget execution of notification jobs.

Jobs are scheduled on the running event loop and never awaited by the request
path. Every job runs inside its own error boundary: failures are logged and
counted, never re-raised, and never retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Iterable

from app.metrics import MetricsRegistry, metrics_registry as default_metrics_registry
from app.metrics.base import track_duration
from app.metrics.definitions import (
    BACKGROUND_JOB_DURATION,
    BACKGROUND_JOB_FAILURES,
    BACKGROUND_JOBS,
    NOTIFICATION_FAILURES,
    NOTIFICATIONS_SENT,
)

from .sender import EmailSender, NotificationError

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Run notification jobs in the background with bounded concurrency."""

    def __init__(
        self,
        sender: EmailSender,
        *,
        max_concurrency: int = 8,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self.sender = sender
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._metrics = metrics or default_metrics_registry
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, job: Awaitable[None], *, kind: str) -> asyncio.Task[None]:
        """Schedule ``job`` and return immediately."""

        self._metrics.counter(BACKGROUND_JOBS, label_names=("kind",)).inc(labels={"kind": kind})
        task = asyncio.create_task(self._run(job, kind), name=f"notification:{kind}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, job: Awaitable[None], kind: str) -> None:
        labels = {"kind": kind}
        duration = self._metrics.distribution(BACKGROUND_JOB_DURATION, label_names=("kind",))
        async with self._semaphore:
            try:
                with track_duration(duration, labels=labels):
                    await job
            except Exception:
                self._metrics.counter(BACKGROUND_JOB_FAILURES, label_names=("kind",)).inc(labels=labels)
                logger.exception("Background notification job %r failed", kind)

    async def drain(self) -> None:
        """Wait for every job submitted so far, including jobs they schedule."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def deliver(self, to: str, subject: str, html: str, *, kind: str) -> bool:
        """Send one email, logging and counting the outcome instead of raising."""

        labels = {"kind": kind}
        try:
            await self.sender.send(to, subject, html)
        except NotificationError:
            self._metrics.counter(NOTIFICATION_FAILURES, label_names=("kind",)).inc(labels=labels)
            logger.exception("Failed to send %s notification to %s", kind, to)
            return False
        self._metrics.counter(NOTIFICATIONS_SENT, label_names=("kind",)).inc(labels=labels)
        return True

    async def fan_out(self, recipients: Iterable[str], subject: str, html: str, *, kind: str) -> int:
        """Send the same email to every recipient independently; return the success count."""

        addresses = list(recipients)
        results = await asyncio.gather(
            *(self.deliver(address, subject, html, kind=kind) for address in addresses),
            return_exceptions=True,
        )
        sent = 0
        for address, result in zip(addresses, results):
            if isinstance(result, BaseException):
                self._metrics.counter(NOTIFICATION_FAILURES, label_names=("kind",)).inc(labels={"kind": kind})
                logger.error("Unexpected error notifying %s: %r", address, result)
            elif result:
                sent += 1
        logger.info("Sent %d/%d %s notifications", sent, len(addresses), kind)
        return sent
