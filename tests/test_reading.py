from __future__ import annotations

import allure
import pytest

from learning_feed.content.history import HistoryStore
from learning_feed.content.models import (
    ContentBody,
    GeneratedContentRecord,
    GeneratedContentStatus,
    HistoryEntryCreate,
)
from learning_feed.content.reading import ReadingSession
from learning_feed.content.recent import RecentArticlesStore
from learning_feed.content.saved import SavedContentCoordinator

pytestmark = [
    allure.epic("Reading History"),
    allure.feature("Reading Session"),
]

CONTENT = ContentBody(title="Plate tectonics", body="Continents drift.", category="Geology")


def _completed(repository, request_id: str) -> GeneratedContentRecord:
    return repository.put_generated_content(
        user_id="u1",
        request_id=request_id,
        status=GeneratedContentStatus.COMPLETED.value,
        content=CONTENT,
        topic_summary="Plate tectonics",
    )


def _reading(repository, scheduler) -> tuple[ReadingSession, HistoryStore]:
    history = HistoryStore(repository)
    reading = ReadingSession(
        user_id="u1",
        history=history,
        recent=RecentArticlesStore(repository),
        saved=SavedContentCoordinator(repository),
        scheduler=scheduler,
    )
    return reading, history


def test_open_content_marks_history_viewed_after_five_seconds(repository, scheduler) -> None:
    reading, history = _reading(repository, scheduler)
    record = _completed(repository, "r1")
    entry_id = history.append_entry(
        user_id="u1",
        entry=HistoryEntryCreate(
            request_id="r1",
            topic_summary="Plate tectonics",
            category="Geology",
        ),
    )

    reading.open(record)
    scheduler.advance(4)
    assert repository.get_history_entry(user_id="u1", entry_id=entry_id).viewed is False
    scheduler.advance(1)

    assert repository.get_history_entry(user_id="u1", entry_id=entry_id).viewed is True
    assert [a.content.title for a in reading.recent.get_recent_articles(user_id="u1")] == [
        "Plate tectonics",
    ]


def test_close_before_five_seconds_leaves_entry_unviewed(repository, scheduler) -> None:
    reading, history = _reading(repository, scheduler)
    record = _completed(repository, "r1")
    entry_id = history.append_entry(
        user_id="u1",
        entry=HistoryEntryCreate(
            request_id="r1",
            topic_summary="Plate tectonics",
            category="Geology",
        ),
    )

    reading.open(record)
    scheduler.advance(2)
    reading.close()
    scheduler.advance(10)

    assert repository.get_history_entry(user_id="u1", entry_id=entry_id).viewed is False
    assert reading.current is None


def test_confirmation_without_history_entry_is_harmless(repository, scheduler) -> None:
    reading, history = _reading(repository, scheduler)

    reading.open(_completed(repository, "r1"))
    scheduler.advance(5)

    assert history.fetch_recent_summaries(user_id="u1") == []
    assert reading.timer.was_marked("r1") is True


def test_toggle_saved_updates_view_state(repository, scheduler) -> None:
    reading, _ = _reading(repository, scheduler)
    reading.open(_completed(repository, "r1"))

    result = reading.toggle_saved()

    assert result.success is True
    assert reading.saved_state is not None
    assert reading.saved_state.saved is True
    assert reading.saved_state.saved_count == 1
    assert reading.saved.is_saved(user_id="u1", request_id="r1") is True


def test_open_requires_content_body(repository, scheduler) -> None:
    reading, _ = _reading(repository, scheduler)
    pending = repository.put_generated_content(
        user_id="u1",
        request_id="r1",
        status=GeneratedContentStatus.PENDING.value,
    )

    with pytest.raises(ValueError, match="no content"):
        reading.open(pending)
    with pytest.raises(ValueError, match="No content is open"):
        reading.toggle_saved()
