from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.db.memory import InMemoryDocumentStore
from app.metrics import MetricsRegistry
from app.notifications.dispatcher import NotificationDispatcher
from app.notifications.sender import NotificationError
from app.tickets.service import TicketService
from app.users.service import UserService


class RecordingSender:
    """Email sender double that records messages and fails for chosen recipients."""

    def __init__(self, *, failing: tuple[str, ...] = ()) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.failing = set(failing)
        self.gate: asyncio.Event | None = None

    async def send(self, to: str, subject: str, html: str) -> str:
        if self.gate is not None:
            await self.gate.wait()
        if to in self.failing:
            raise NotificationError(f"provider rejected {to}")
        self.sent.append((to, subject, html))
        return f"msg-{len(self.sent)}"

    def recipients(self) -> list[str]:
        return [to for to, _, _ in self.sent]


class SteppingClock:
    """Deterministic clock; each call advances by ``step`` unless ``step`` is negative."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def metrics() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def dispatcher(sender, metrics) -> NotificationDispatcher:
    return NotificationDispatcher(sender, max_concurrency=4, metrics=metrics)


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def user_service(store, clock) -> UserService:
    return UserService(store, clock=clock)


@pytest.fixture
def ticket_service(store, dispatcher, user_service, clock) -> TicketService:
    return TicketService(store, dispatcher, users=user_service, clock=clock)
