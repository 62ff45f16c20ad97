"""Realtime completion watcher with a completion deadline."""

from __future__ import annotations

import logging
import threading

from learning_feed.content.errors import ContentError
from learning_feed.content.history import HistoryStore
from learning_feed.content.models import (
    GeneratedContentRecord,
    GeneratedContentStatus,
    HistoryEntryCreate,
    RequestState,
)
from learning_feed.content.repository import ContentRepository
from learning_feed.content.session import UserSession
from learning_feed.content.subscription import DocumentSubscription
from learning_feed.scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

COMPLETION_TIMEOUT_SECONDS = 60.0
TIMEOUT_MESSAGE = "Content generation is taking too long. Please try again."
GENERATION_FAILED_MESSAGE = "Failed to generate content. Please try again."


class WatchScope:
    """Subscription and deadline timer for one pending request, released together."""

    def __init__(
        self,
        *,
        watcher: CompletionWatcher,
        session: UserSession,
        request_id: str,
    ) -> None:
        self.watcher = watcher
        self.session = session
        self.request_id = request_id
        self._lock = threading.Lock()
        self._disposed = False
        self._timer: TimerHandle | None = None
        self._subscription: DocumentSubscription | None = None

    @property
    def user_id(self) -> str:
        return self.session.user_id

    @property
    def disposed(self) -> bool:
        return self._disposed

    def open(self) -> WatchScope:
        logger.info("Watching generated content %s for user %s", self.request_id, self.user_id)
        timer = self.watcher.scheduler.call_later(self.watcher.timeout_seconds, self._on_timeout)
        with self._lock:
            self._timer = timer
        subscription = self.watcher.repository.watch_generated_content(
            user_id=self.user_id,
            request_id=self.request_id,
            scheduler=self.watcher.scheduler,
            poll_interval_seconds=self.watcher.poll_interval_seconds,
            on_snapshot=self._on_snapshot,
            on_error=self._on_error,
        )
        with self._lock:
            already_disposed = self._disposed
            self._subscription = subscription
        if already_disposed:
            subscription.cancel()
        return self

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            timer, self._timer = self._timer, None
            subscription, self._subscription = self._subscription, None
        if timer is not None:
            timer.cancel()
        if subscription is not None:
            subscription.cancel()
        logger.debug("Watch scope for request %s disposed", self.request_id)

    def wait(self, timeout: float | None = None) -> RequestState:
        """Block until the watched request leaves the pending state."""

        return self.session.wait_for_terminal(self.request_id, timeout=timeout)

    def __enter__(self) -> WatchScope:
        return self

    def __exit__(self, *_: object) -> None:
        self.dispose()

    def _on_snapshot(self, record: GeneratedContentRecord) -> None:
        if self._disposed:
            return
        if record.status == GeneratedContentStatus.COMPLETED.value:
            # history is written before waiters see the terminal state
            if self.session.pending_request_id == self.request_id:
                self.watcher.record_history(user_id=self.user_id, record=record)
                self.session.complete(self.request_id, record)
            self.dispose()
        elif record.status == GeneratedContentStatus.ERROR.value:
            self.session.fail(self.request_id, record.error or GENERATION_FAILED_MESSAGE)
            self.dispose()
        elif record.status == GeneratedContentStatus.PENDING.value:
            logger.debug("Request %s still processing", self.request_id)
        else:
            logger.warning("Unknown status %r for request %s", record.status, self.request_id)

    def _on_error(self, error: Exception) -> None:
        if self._disposed:
            return
        self.session.fail(self.request_id, f"Failed to listen for content: {error}")
        self.dispose()

    def _on_timeout(self) -> None:
        if self._disposed:
            return
        logger.warning("Timed out waiting for generated content %s", self.request_id)
        self.session.time_out(self.request_id, TIMEOUT_MESSAGE)
        self.dispose()


class CompletionWatcher:
    """Keeps one watch scope bound to the session's pending request."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        repository: ContentRepository,
        history: HistoryStore,
        scheduler: Scheduler,
        timeout_seconds: float = COMPLETION_TIMEOUT_SECONDS,
        poll_interval_seconds: float = 1.0,
    ) -> None:
        self.repository = repository
        self.history = history
        self.scheduler = scheduler
        self.timeout_seconds = timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self._lock = threading.Lock()
        self._active: WatchScope | None = None

    @property
    def active_scope(self) -> WatchScope | None:
        scope = self._active
        if scope is not None and scope.disposed:
            return None
        return scope

    def sync(self, session: UserSession | None) -> WatchScope | None:
        """Match the active scope to the session's pending marker.

        Keeps the current scope when user and request are unchanged, otherwise disposes
        it and opens a new one; with no pending request the watcher is inactive.
        """

        request_id = session.pending_request_id if session is not None else None
        with self._lock:
            current = self._active
            if (
                current is not None
                and not current.disposed
                and session is not None
                and current.user_id == session.user_id
                and current.request_id == request_id
            ):
                return current
            self._active = None
        if current is not None:
            current.dispose()
        if session is None or request_id is None:
            return None

        scope = WatchScope(watcher=self, session=session, request_id=request_id)
        with self._lock:
            self._active = scope
        return scope.open()

    def close(self) -> None:
        """Tear down the active scope, cancelling its subscription and timer."""

        self.sync(None)

    def record_history(self, *, user_id: str, record: GeneratedContentRecord) -> str | None:
        """Append the completed topic to history; failures are logged, never raised."""

        category = record.content.category if record.content is not None else ""
        if not record.topic_summary or not category:
            logger.info("Request %s completed without topic summary/category", record.request_id)
            return None
        try:
            return self.history.append_entry(
                user_id=user_id,
                entry=HistoryEntryCreate(
                    request_id=record.request_id,
                    topic_summary=record.topic_summary,
                    category=category,
                ),
            )
        except ContentError as error:
            logger.warning("History append failed for request %s: %s", record.request_id, error)
            return None
