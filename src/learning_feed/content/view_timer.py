"""Marks content viewed only after it stays open for a few seconds."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from learning_feed.scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

VIEW_CONFIRM_SECONDS = 5.0


class ViewConfirmationTimer:
    """One timer for the currently open content.

    A request id fires at most once per viewing session; the memo is dropped when the
    content is cleared so a later, independent viewing can mark it again.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler,
        on_confirmed: Callable[[str, str], None],
        delay_seconds: float = VIEW_CONFIRM_SECONDS,
    ) -> None:
        self.scheduler = scheduler
        self.on_confirmed = on_confirmed
        self.delay_seconds = delay_seconds
        self._lock = threading.Lock()
        self._timer: TimerHandle | None = None
        self._current: tuple[str, str] | None = None
        self._marked: set[str] = set()

    @property
    def active_request_id(self) -> str | None:
        current = self._current
        return current[1] if current is not None and self._timer is not None else None

    def was_marked(self, request_id: str) -> bool:
        return request_id in self._marked

    def start(self, *, user_id: str | None, request_id: str | None) -> bool:
        """Start timing newly displayed content; returns False when preconditions fail."""

        self.cancel()
        if not user_id or not request_id:
            return False
        with self._lock:
            if request_id in self._marked:
                return False
            self._current = (user_id, request_id)
            self._timer = self.scheduler.call_later(
                self.delay_seconds,
                lambda: self._fire(user_id, request_id),
            )
        logger.debug("View timer started for request %s", request_id)
        return True

    def cancel(self) -> None:
        with self._lock:
            timer, self._timer = self._timer, None
            self._current = None
        if timer is not None:
            timer.cancel()

    def clear(self) -> None:
        """Content closed: cancel any pending timer and forget this session's marks."""

        self.cancel()
        with self._lock:
            self._marked.clear()

    def _fire(self, user_id: str, request_id: str) -> None:
        with self._lock:
            if self._current != (user_id, request_id) or request_id in self._marked:
                return
            self._marked.add(request_id)
            self._timer = None
        logger.info(
            "Request %s displayed for %.0fs, marking viewed",
            request_id,
            self.delay_seconds,
        )
        self.on_confirmed(user_id, request_id)
