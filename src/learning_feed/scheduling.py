"""Delayed-callback scheduling used by watchers and view timers."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """Handle returned by a scheduler for one pending callback."""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Protocol implemented by callback schedulers."""

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle: ...


class ThreadingScheduler:
    """Runs each callback on a daemon `threading.Timer`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._timers: set[threading.Timer] = set()

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle:
        timer: threading.Timer

        def _run() -> None:
            with self._lock:
                self._timers.discard(timer)
            try:
                callback()
            except Exception:
                logger.exception("Scheduled callback failed")

        timer = threading.Timer(max(0.0, delay_seconds), _run)
        timer.daemon = True
        with self._lock:
            self._timers.add(timer)
        timer.start()
        return timer

    def shutdown(self) -> None:
        """Cancel every timer that has not fired yet."""

        with self._lock:
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()
