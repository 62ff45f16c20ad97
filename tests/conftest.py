"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from learning_feed.content.repository import ContentRepository


class ManualClock:
    """Store clock that only moves when a test advances it."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)

    def set(self, value: datetime) -> None:
        self.current = value


class ManualTimer:
    def __init__(self, due: float, order: int, callback: Callable[[], None]) -> None:
        self.due = due
        self.order = order
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler: callbacks run only inside `advance()`."""

    def __init__(self) -> None:
        self.now = 0.0
        self._order = 0
        self._timers: list[ManualTimer] = []

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> ManualTimer:
        self._order += 1
        timer = ManualTimer(self.now + max(0.0, delay_seconds), self._order, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._timers if not timer.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.order))
            self._timers.remove(timer)
            self.now = timer.due
            timer.callback()
        self._timers = [t for t in self._timers if not t.cancelled]
        self.now = target


@pytest.fixture()
def clock() -> ManualClock:
    # Wednesday
    return ManualClock(datetime(2026, 10, 14, 12, 0, tzinfo=UTC))


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def repository(tmp_path: Path, clock: ManualClock) -> Iterator[ContentRepository]:
    repo = ContentRepository(tmp_path / "content.db", clock=clock)
    repo.init_schema()
    yield repo
    repo.close()
