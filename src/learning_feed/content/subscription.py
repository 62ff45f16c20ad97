"""Polling-driven realtime subscription to one stored document."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError

from learning_feed.content.models import GeneratedContentRecord
from learning_feed.scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class DocumentSubscription:
    """Delivers a snapshot every time the watched record's revision changes.

    The first poll happens synchronously in `start()`, later polls run on the scheduler
    until `cancel()` is called.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        fetch: Callable[[], GeneratedContentRecord | None],
        scheduler: Scheduler,
        poll_interval_seconds: float,
        on_snapshot: Callable[[GeneratedContentRecord], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        self._fetch = fetch
        self._scheduler = scheduler
        self._poll_interval_seconds = poll_interval_seconds
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._lock = threading.Lock()
        self._cancelled = False
        self._last_revision: int | None = None
        self._next_poll: TimerHandle | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        self._poll()

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            next_poll, self._next_poll = self._next_poll, None
        if next_poll is not None:
            next_poll.cancel()

    def _poll(self) -> None:
        if self._cancelled:
            return
        try:
            record = self._fetch()
        except SQLAlchemyError as error:
            logger.warning("Document subscription read failed: %s", error)
            if not self._cancelled:
                self._on_error(error)
            return

        if record is not None and record.revision != self._last_revision:
            self._last_revision = record.revision
            if not self._cancelled:
                self._on_snapshot(record)

        with self._lock:
            if self._cancelled:
                return
            self._next_poll = self._scheduler.call_later(self._poll_interval_seconds, self._poll)
