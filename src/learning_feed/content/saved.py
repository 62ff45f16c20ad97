"""Optimistic save/unsave toggling with rollback on persistence failure."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from learning_feed.content.errors import PersistenceFailure
from learning_feed.content.models import ContentBody, SavedContentRecord
from learning_feed.content.repository import ContentRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SaveToggleResult:
    """Outcome of one toggle; `attempted_saved` is reported even on failure."""

    attempted_saved: bool
    error: PersistenceFailure | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class SavedContentCoordinator:
    """Owns the saved flag: the saved record and the history mirror change together."""

    def __init__(self, repository: ContentRepository) -> None:
        self.repository = repository

    def toggle_saved(
        self,
        *,
        user_id: str,
        request_id: str,
        content: ContentBody | None,
        currently_saved: bool,
    ) -> SaveToggleResult:
        attempted = not currently_saved
        try:
            self.repository.set_saved(
                user_id=user_id,
                request_id=request_id,
                content=content,
                saved=attempted,
            )
        except (SQLAlchemyError, ValueError) as error:
            logger.warning(
                "Persisting saved=%s failed for request %s: %s",
                attempted,
                request_id,
                error,
            )
            return SaveToggleResult(
                attempted_saved=attempted,
                error=PersistenceFailure(f"Failed to update saved content: {error}"),
            )
        logger.info("Content %s for request %s", "saved" if attempted else "unsaved", request_id)
        return SaveToggleResult(attempted_saved=attempted)

    def is_saved(self, *, user_id: str, request_id: str) -> bool:
        return self.repository.get_saved_content(user_id=user_id, request_id=request_id) is not None

    def list_saved(self, *, user_id: str, max_entries: int = 50) -> list[SavedContentRecord]:
        return self.repository.list_saved_content(user_id=user_id, limit=max_entries)

    def saved_count(self, *, user_id: str) -> int:
        """Number of saved records; 0 when the store cannot be read."""

        try:
            return self.repository.count_saved_content(user_id=user_id)
        except SQLAlchemyError as error:
            logger.warning("Saved count read failed for user %s: %s", user_id, error)
            return 0

    def update_notes(self, *, user_id: str, request_id: str, notes: str | None) -> bool:
        try:
            return self.repository.update_saved_notes(
                user_id=user_id,
                request_id=request_id,
                notes=notes,
            )
        except SQLAlchemyError as error:
            raise PersistenceFailure(f"Failed to update saved notes: {error}") from error


class OptimisticSavedState:
    """Caller-side saved flag and saved count, flipped before persistence resolves."""

    def __init__(self, *, saved: bool, saved_count: int) -> None:
        self.saved = saved
        self.saved_count = saved_count

    def apply(self, new_saved: bool) -> None:
        if new_saved == self.saved:
            return
        self.saved = new_saved
        self.saved_count = max(0, self.saved_count + (1 if new_saved else -1))

    def toggle(
        self,
        coordinator: SavedContentCoordinator,
        *,
        user_id: str,
        request_id: str,
        content: ContentBody | None,
    ) -> SaveToggleResult:
        """Flip locally, persist, and restore the pre-toggle values on failure."""

        previous_saved, previous_count = self.saved, self.saved_count
        self.apply(not previous_saved)
        result = coordinator.toggle_saved(
            user_id=user_id,
            request_id=request_id,
            content=content,
            currently_saved=previous_saved,
        )
        if not result.success:
            self.saved, self.saved_count = previous_saved, previous_count
        return result
