from __future__ import annotations

import time
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta, timezone

import allure
import pytest
from sqlalchemy.exc import OperationalError

from learning_feed.content.errors import HistoryReadFailure
from learning_feed.content.history import HistoryStore, start_of_week
from learning_feed.content.models import HistoryEntry, HistoryEntryCreate

pytestmark = [
    allure.epic("Reading History"),
    allure.feature("Anti-Repetition History"),
]


def _entry(request_id: str, topic: str = "Topic", category: str = "Science") -> HistoryEntryCreate:
    return HistoryEntryCreate(request_id=request_id, topic_summary=topic, category=category)


def test_append_entry_truncates_topic_summary_to_100_chars(repository) -> None:
    store = HistoryStore(repository)

    entry_id = store.append_entry(user_id="u1", entry=_entry("r1", topic="x" * 250))

    stored = repository.get_history_entry(user_id="u1", entry_id=entry_id)
    assert stored is not None
    assert stored.topic_summary == "x" * 100
    assert stored.viewed is False
    assert stored.viewed_at is None
    assert stored.saved is False


def test_append_entry_is_idempotent_per_request_id(repository) -> None:
    store = HistoryStore(repository)

    first = store.append_entry(user_id="u1", entry=_entry("r1", topic="Volcanoes"))
    second = store.append_entry(user_id="u1", entry=_entry("r1", topic="Something else"))

    assert first == second
    assert store.fetch_recent_summaries(user_id="u1") == ["Volcanoes"]


def test_fetch_recent_summaries_is_most_recent_first_and_bounded(repository, clock) -> None:
    store = HistoryStore(repository)
    for index in range(5):
        store.append_entry(user_id="u1", entry=_entry(f"r{index}", topic=f"Topic {index}"))
        clock.advance(60)

    assert store.fetch_recent_summaries(user_id="u1", max_entries=3) == [
        "Topic 4",
        "Topic 3",
        "Topic 2",
    ]
    assert store.fetch_recent_summaries(user_id="other") == []


def test_fetch_recent_summaries_orders_same_timestamp_by_insertion(repository) -> None:
    store = HistoryStore(repository)
    store.append_entry(user_id="u1", entry=_entry("r1", topic="First"))
    store.append_entry(user_id="u1", entry=_entry("r2", topic="Second"))

    assert store.fetch_recent_summaries(user_id="u1") == ["Second", "First"]


def test_fetch_recent_summaries_returns_empty_list_when_read_fails(
    repository,
    monkeypatch,
) -> None:
    store = HistoryStore(repository)
    store.append_entry(user_id="u1", entry=_entry("r1"))

    def _broken(**_: object) -> list[HistoryEntry]:
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(repository, "list_history", _broken)

    assert store.fetch_recent_summaries(user_id="u1") == []
    with pytest.raises(HistoryReadFailure):
        store.fetch_full_history(user_id="u1")


def test_mark_viewed_sets_viewed_at_once(repository, clock) -> None:
    store = HistoryStore(repository)
    entry_id = store.append_entry(user_id="u1", entry=_entry("r1"))
    clock.advance(30)

    assert store.mark_viewed(user_id="u1", entry_id=entry_id) is True
    first = repository.get_history_entry(user_id="u1", entry_id=entry_id)
    clock.advance(600)
    assert store.mark_viewed(user_id="u1", entry_id=entry_id) is False
    second = repository.get_history_entry(user_id="u1", entry_id=entry_id)

    assert first is not None
    assert second is not None
    assert first.viewed is True
    assert first.viewed_at == datetime(2026, 10, 14, 12, 0, 30, tzinfo=UTC)
    assert second.viewed_at == first.viewed_at


def test_mark_viewed_unknown_entry_returns_false(repository) -> None:
    store = HistoryStore(repository)

    assert store.mark_viewed(user_id="u1", entry_id="missing") is False


def test_weekly_read_count_starts_on_sunday_midnight(repository, clock) -> None:
    store = HistoryStore(repository)

    def _read(request_id: str, at: datetime) -> None:
        clock.set(at)
        entry_id = store.append_entry(user_id="u1", entry=_entry(request_id))
        store.mark_viewed(user_id="u1", entry_id=entry_id)

    _read("saturday", datetime(2026, 10, 10, 23, 59, tzinfo=UTC))
    _read("sunday", datetime(2026, 10, 11, 0, 0, tzinfo=UTC))
    _read("wednesday", datetime(2026, 10, 14, 9, 0, tzinfo=UTC))
    store.append_entry(user_id="u1", entry=_entry("unread"))

    now = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)
    assert store.weekly_read_count(user_id="u1", now=now) == 2
    assert store.weekly_read_count(user_id="u1", now=now + timedelta(days=4)) == 0


def test_weekly_read_count_is_recomputed_after_new_views(repository) -> None:
    store = HistoryStore(repository)
    now = datetime(2026, 10, 14, 13, 0, tzinfo=UTC)
    entry_id = store.append_entry(user_id="u1", entry=_entry("r1"))

    assert store.weekly_read_count(user_id="u1", now=now) == 0
    store.mark_viewed(user_id="u1", entry_id=entry_id)
    assert store.weekly_read_count(user_id="u1", now=now) == 1


def test_weekly_read_count_counts_repeated_views_once(repository, clock) -> None:
    store = HistoryStore(repository)
    now = datetime(2026, 10, 14, 13, 0, tzinfo=UTC)
    entry_id = store.append_entry(user_id="u1", entry=_entry("r1"))

    store.mark_viewed(user_id="u1", entry_id=entry_id)
    after_first = store.weekly_read_count(user_id="u1", now=now)
    clock.advance(120)
    store.mark_viewed(user_id="u1", entry_id=entry_id)
    after_second = store.weekly_read_count(user_id="u1", now=now)

    assert after_first == 1
    assert after_second == 1


def test_start_of_week_uses_timezone_of_now() -> None:
    pacific = timezone(timedelta(hours=-7))

    assert start_of_week(datetime(2026, 10, 11, 8, 30, tzinfo=UTC)) == datetime(
        2026, 10, 11, tzinfo=UTC
    )
    assert start_of_week(datetime(2026, 10, 17, 23, 0, tzinfo=pacific)) == datetime(
        2026, 10, 11, tzinfo=pacific
    )


@pytest.fixture()
def new_york_local_time(monkeypatch) -> Iterator[None]:
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_start_of_week_keeps_local_midnight_across_dst_change(new_york_local_time) -> None:
    # clocks fall back on Sunday 2026-11-01, so that midnight is still EDT
    week_start = start_of_week(datetime(2026, 11, 4, 12, 0))

    assert week_start == datetime(2026, 11, 1, 4, 0, tzinfo=UTC)
    assert week_start.utcoffset() == timedelta(hours=-4)


def test_history_entry_read_at_falls_back_to_generated_at() -> None:
    generated = datetime(2026, 10, 12, 8, 0, tzinfo=UTC)
    entry = HistoryEntry(
        id="e1",
        request_id="r1",
        topic_summary="Tides",
        category="Science",
        generated_at=generated,
        viewed=True,
        viewed_at=None,
        saved=False,
    )

    assert entry.read_at == generated


def test_delete_and_clear_history(repository) -> None:
    store = HistoryStore(repository)
    first = store.append_entry(user_id="u1", entry=_entry("r1"))
    store.append_entry(user_id="u1", entry=_entry("r2"))
    store.append_entry(user_id="u2", entry=_entry("r3"))

    assert store.delete_entry(user_id="u1", entry_id=first) is True
    assert store.find_entry_id(user_id="u1", request_id="r1") is None
    assert store.clear_history(user_id="u1") == 1
    assert store.fetch_recent_summaries(user_id="u2") == ["Topic"]
