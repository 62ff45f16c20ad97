"""Anti-repetition history store and weekly reading statistics."""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

from sqlalchemy.exc import SQLAlchemyError

from learning_feed.content.errors import HistoryReadFailure, PersistenceFailure
from learning_feed.content.models import HistoryEntry, HistoryEntryCreate
from learning_feed.content.repository import ContentRepository

logger = logging.getLogger(__name__)

TOPIC_SUMMARY_MAX_CHARS = 100
DEFAULT_HISTORY_LIMIT = 20


def start_of_week(now: datetime) -> datetime:
    """Most recent Sunday 00:00 in the timezone of `now` (local time when naive).

    The boundary is built from the Sunday date rather than by subtracting days, so a DST
    change during the week does not shift it.
    """

    sunday = now.date() - timedelta(days=(now.weekday() + 1) % 7)
    midnight = datetime.combine(sunday, time.min)
    if now.tzinfo is None:
        return midnight.astimezone()
    return midnight.replace(tzinfo=now.tzinfo)


class HistoryStore:
    """Bounded, time-ordered log of topic summaries per user."""

    def __init__(
        self,
        repository: ContentRepository,
        *,
        topic_summary_max_chars: int = TOPIC_SUMMARY_MAX_CHARS,
    ) -> None:
        self.repository = repository
        self.topic_summary_max_chars = topic_summary_max_chars

    def append_entry(self, *, user_id: str, entry: HistoryEntryCreate) -> str:
        """Record one completed generation; returns the entry id."""

        truncated = HistoryEntryCreate(
            request_id=entry.request_id,
            topic_summary=entry.topic_summary[: self.topic_summary_max_chars],
            category=entry.category,
        )
        try:
            stored, created = self.repository.add_history_entry(user_id=user_id, entry=truncated)
        except SQLAlchemyError as error:
            raise PersistenceFailure(f"Failed to add content history: {error}") from error
        if created:
            logger.info("History entry %s added for request %s", stored.id, entry.request_id)
        else:
            logger.info("History entry for request %s already exists", entry.request_id)
        return stored.id

    def fetch_recent_summaries(
        self,
        *,
        user_id: str,
        max_entries: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[str]:
        """Most-recent-first topic summaries; empty list when history cannot be read."""

        try:
            entries = self.repository.list_history(user_id=user_id, limit=max_entries)
        except SQLAlchemyError as error:
            logger.warning(
                "History read failed for user %s, sending no context: %s",
                user_id,
                error,
            )
            return []
        summaries = [entry.topic_summary for entry in entries]
        logger.debug("Fetched %d history summaries for user %s", len(summaries), user_id)
        return summaries

    def fetch_full_history(
        self,
        *,
        user_id: str,
        max_entries: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[HistoryEntry]:
        try:
            return self.repository.list_history(user_id=user_id, limit=max_entries)
        except SQLAlchemyError as error:
            raise HistoryReadFailure(f"Failed to read content history: {error}") from error

    def find_entry_id(self, *, user_id: str, request_id: str) -> str | None:
        try:
            entry = self.repository.get_history_entry_by_request_id(
                user_id=user_id,
                request_id=request_id,
            )
        except SQLAlchemyError as error:
            raise HistoryReadFailure(f"Failed to look up content history: {error}") from error
        return entry.id if entry is not None else None

    def mark_viewed(self, *, user_id: str, entry_id: str) -> bool:
        """Stamp viewed/viewed_at once; repeated calls are no-ops returning False."""

        try:
            marked = self.repository.mark_history_viewed(user_id=user_id, entry_id=entry_id)
        except SQLAlchemyError as error:
            raise PersistenceFailure(f"Failed to mark content as viewed: {error}") from error
        if marked:
            logger.info("History entry %s marked viewed", entry_id)
        return marked

    def weekly_read_count(self, *, user_id: str, now: datetime | None = None) -> int:
        """Viewed entries whose read time falls in the current Sunday-based week.

        Recomputed from the stored entries on every call.
        """

        week_start = start_of_week(now or self.repository.now().astimezone().replace(tzinfo=None))
        try:
            viewed = self.repository.list_viewed_history(user_id=user_id)
        except SQLAlchemyError as error:
            raise HistoryReadFailure(f"Failed to read content history: {error}") from error
        return sum(1 for entry in viewed if entry.read_at >= week_start)

    def delete_entry(self, *, user_id: str, entry_id: str) -> bool:
        try:
            return self.repository.delete_history_entry(user_id=user_id, entry_id=entry_id)
        except SQLAlchemyError as error:
            raise PersistenceFailure(f"Failed to delete content history: {error}") from error

    def clear_history(self, *, user_id: str) -> int:
        try:
            cleared = self.repository.clear_history(user_id=user_id)
        except SQLAlchemyError as error:
            raise PersistenceFailure(f"Failed to clear content history: {error}") from error
        logger.info("Cleared %d history entries for user %s", cleared, user_id)
        return cleared
