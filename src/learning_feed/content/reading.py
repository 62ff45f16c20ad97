"""Reading session for one open piece of generated content."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from learning_feed.content.errors import ContentError
from learning_feed.content.history import HistoryStore
from learning_feed.content.models import GeneratedContentRecord
from learning_feed.content.recent import RecentArticlesStore
from learning_feed.content.saved import (
    OptimisticSavedState,
    SavedContentCoordinator,
    SaveToggleResult,
)
from learning_feed.content.view_timer import VIEW_CONFIRM_SECONDS, ViewConfirmationTimer
from learning_feed.scheduling import Scheduler

logger = logging.getLogger(__name__)


class ReadingSession:
    """Tracks the content a user currently has open.

    Opening content remembers it as a recent article and starts the view timer; the
    history entry is marked viewed only once the timer fires. Both side effects are
    best effort and never interrupt reading.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        user_id: str,
        history: HistoryStore,
        recent: RecentArticlesStore,
        saved: SavedContentCoordinator,
        scheduler: Scheduler,
        view_confirm_seconds: float = VIEW_CONFIRM_SECONDS,
    ) -> None:
        self.user_id = user_id
        self.history = history
        self.recent = recent
        self.saved = saved
        self.timer = ViewConfirmationTimer(
            scheduler=scheduler,
            on_confirmed=self._confirm_viewed,
            delay_seconds=view_confirm_seconds,
        )
        self.current: GeneratedContentRecord | None = None
        self.saved_state: OptimisticSavedState | None = None

    def open(self, record: GeneratedContentRecord) -> None:
        """Display `record`; switching content restarts the view timer for it."""

        if record.content is None:
            raise ValueError(f"Request {record.request_id} has no content to display.")
        self.current = record
        self.saved_state = OptimisticSavedState(
            saved=self._load_saved_flag(record.request_id),
            saved_count=self.saved.saved_count(user_id=self.user_id),
        )
        try:
            self.recent.add_recent_article(user_id=self.user_id, content=record.content)
        except ContentError as error:
            logger.warning("Could not remember recent article %r: %s", record.content.title, error)
        self.timer.start(user_id=self.user_id, request_id=record.request_id)

    def close(self) -> None:
        self.timer.clear()
        self.current = None
        self.saved_state = None

    def toggle_saved(self) -> SaveToggleResult:
        if self.current is None or self.saved_state is None:
            raise ValueError("No content is open.")
        return self.saved_state.toggle(
            self.saved,
            user_id=self.user_id,
            request_id=self.current.request_id,
            content=self.current.content,
        )

    def _load_saved_flag(self, request_id: str) -> bool:
        try:
            return self.saved.is_saved(user_id=self.user_id, request_id=request_id)
        except SQLAlchemyError as error:
            logger.warning("Saved flag read failed for request %s: %s", request_id, error)
            return False

    def _confirm_viewed(self, user_id: str, request_id: str) -> None:
        try:
            entry_id = self.history.find_entry_id(user_id=user_id, request_id=request_id)
            if entry_id is None:
                logger.info("No history entry for request %s, nothing to mark", request_id)
                return
            self.history.mark_viewed(user_id=user_id, entry_id=entry_id)
        except ContentError as error:
            logger.warning("Could not mark request %s viewed: %s", request_id, error)
