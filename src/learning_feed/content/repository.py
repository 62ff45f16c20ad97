"""Document store adapter over per-user content collections."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from uuid import uuid4

from sqlalchemy import delete as sa_delete
from sqlalchemy import func
from sqlalchemy import update as sa_update
from sqlmodel import Session, col, select

from learning_feed.content.models import (
    ContentBody,
    ContentRequestMarker,
    GeneratedContentRecord,
    GeneratedContentStatus,
    GenerationRequest,
    HistoryEntry,
    HistoryEntryCreate,
    RecentArticle,
    SavedContentRecord,
)
from learning_feed.content.subscription import DocumentSubscription
from learning_feed.scheduling import Scheduler
from learning_feed.storage.alembic_runner import upgrade_head
from learning_feed.storage.common import (
    build_sqlite_engine,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from learning_feed.storage.sqlmodel_models import (
    AppUser,
    ContentHistoryRow,
    ContentRequestRow,
    GeneratedContentRow,
    RecentArticleRow,
    SavedContentRow,
)


class ContentRepository:
    """Per-user document collections backed by SQLModel + SQLite.

    Every timestamp is assigned here from the store clock; callers never supply one.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        clock: Callable[[], datetime] = utc_now,
        sqlite_busy_timeout_ms: int = 5_000,
    ) -> None:
        self.db_path = db_path
        self._clock = clock
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=sqlite_busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations."""

        upgrade_head(self.db_path)

    def now(self) -> datetime:
        """Store-assigned current time (timezone-aware UTC)."""

        return to_utc_aware_datetime(self._clock())

    def ensure_user(self, *, user_id: str, display_name: str) -> None:
        with Session(self.engine) as session:
            self._ensure_user(session=session, user_id=user_id, display_name=display_name)
            session.commit()

    # generated content / request markers

    def record_content_request(self, request: GenerationRequest) -> ContentRequestMarker:
        """Write the audit marker for a triggered request (idempotent per request id)."""

        with Session(self.engine) as session:
            self._ensure_user(session=session, user_id=request.user_id)
            row = session.get(ContentRequestRow, request.request_id)
            if row is None:
                row = ContentRequestRow(
                    request_id=request.request_id,
                    user_id=request.user_id,
                    categories_json=json.dumps(list(request.categories), ensure_ascii=False),
                    daily_minutes=request.daily_minutes,
                    history_count=len(request.history_summaries),
                    requested_at=self._db_now(),
                )
                session.add(row)
                session.commit()
                session.refresh(row)
            return _to_request_marker(row)

    def get_content_request(self, *, request_id: str) -> ContentRequestMarker | None:
        with Session(self.engine) as session:
            row = session.get(ContentRequestRow, request_id)
            return _to_request_marker(row) if row is not None else None

    def put_generated_content(  # noqa: PLR0913
        self,
        *,
        user_id: str,
        request_id: str,
        status: str,
        content: ContentBody | None = None,
        topic_summary: str | None = None,
        error: str | None = None,
    ) -> GeneratedContentRecord:
        """Upsert the worker-owned record for one request, bumping its revision."""

        now = self._db_now()
        content_json = (
            json.dumps(content.to_dict(), ensure_ascii=False) if content is not None else None
        )
        with Session(self.engine) as session:
            self._ensure_user(session=session, user_id=user_id)
            row = session.exec(
                select(GeneratedContentRow).where(
                    GeneratedContentRow.request_id == request_id,
                    GeneratedContentRow.user_id == user_id,
                ),
            ).one_or_none()
            if row is None:
                row = GeneratedContentRow(
                    request_id=request_id,
                    user_id=user_id,
                    status=status,
                    content_json=content_json,
                    topic_summary=topic_summary,
                    error=error,
                    revision=1,
                    generated_at=now,
                    updated_at=now,
                )
            else:
                row.status = status
                row.content_json = content_json
                row.topic_summary = topic_summary
                row.error = error
                row.revision += 1
                row.generated_at = now
                row.updated_at = now
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_generated_content(row)

    def get_generated_content(
        self,
        *,
        user_id: str,
        request_id: str,
    ) -> GeneratedContentRecord | None:
        with Session(self.engine) as session:
            row = session.exec(
                select(GeneratedContentRow).where(
                    GeneratedContentRow.request_id == request_id,
                    GeneratedContentRow.user_id == user_id,
                ),
            ).one_or_none()
            return _to_generated_content(row) if row is not None else None

    def get_latest_generated_content(self, *, user_id: str) -> GeneratedContentRecord | None:
        """Return the newest record if it is completed, else None."""

        with Session(self.engine) as session:
            row = session.exec(
                select(GeneratedContentRow)
                .where(GeneratedContentRow.user_id == user_id)
                .order_by(col(GeneratedContentRow.generated_at).desc())
                .limit(1),
            ).one_or_none()
        if row is None or row.status != GeneratedContentStatus.COMPLETED.value:
            return None
        return _to_generated_content(row)

    def watch_generated_content(  # noqa: PLR0913
        self,
        *,
        user_id: str,
        request_id: str,
        scheduler: Scheduler,
        poll_interval_seconds: float,
        on_snapshot: Callable[[GeneratedContentRecord], None],
        on_error: Callable[[Exception], None],
    ) -> DocumentSubscription:
        """Subscribe to `users/{user_id}/generatedContent/{request_id}` changes."""

        subscription = DocumentSubscription(
            fetch=lambda: self.get_generated_content(user_id=user_id, request_id=request_id),
            scheduler=scheduler,
            poll_interval_seconds=poll_interval_seconds,
            on_snapshot=on_snapshot,
            on_error=on_error,
        )
        subscription.start()
        return subscription

    # content history

    def add_history_entry(
        self,
        *,
        user_id: str,
        entry: HistoryEntryCreate,
    ) -> tuple[HistoryEntry, bool]:
        """Insert one history entry; returns (entry, created).

        An existing entry for the same request id is returned unchanged.
        """

        with Session(self.engine) as session:
            self._ensure_user(session=session, user_id=user_id)
            existing = session.exec(
                select(ContentHistoryRow).where(
                    ContentHistoryRow.user_id == user_id,
                    ContentHistoryRow.request_id == entry.request_id,
                ),
            ).one_or_none()
            if existing is not None:
                return _to_history_entry(existing), False
            row = ContentHistoryRow(
                entry_id=uuid4().hex,
                user_id=user_id,
                request_id=entry.request_id,
                topic_summary=entry.topic_summary,
                category=entry.category,
                generated_at=self._db_now(),
                viewed=False,
                viewed_at=None,
                saved=False,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_history_entry(row), True

    def list_history(self, *, user_id: str, limit: int) -> list[HistoryEntry]:
        """History entries ordered most-recent-first."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(ContentHistoryRow)
                .where(ContentHistoryRow.user_id == user_id)
                .order_by(
                    col(ContentHistoryRow.generated_at).desc(),
                    col(ContentHistoryRow.seq).desc(),
                )
                .limit(limit),
            ).all()
        return [_to_history_entry(row) for row in rows]

    def list_viewed_history(self, *, user_id: str) -> list[HistoryEntry]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(ContentHistoryRow).where(
                    ContentHistoryRow.user_id == user_id,
                    col(ContentHistoryRow.viewed).is_(True),
                ),
            ).all()
        return [_to_history_entry(row) for row in rows]

    def get_history_entry(self, *, user_id: str, entry_id: str) -> HistoryEntry | None:
        with Session(self.engine) as session:
            row = session.exec(
                select(ContentHistoryRow).where(
                    ContentHistoryRow.user_id == user_id,
                    ContentHistoryRow.entry_id == entry_id,
                ),
            ).one_or_none()
            return _to_history_entry(row) if row is not None else None

    def get_history_entry_by_request_id(
        self,
        *,
        user_id: str,
        request_id: str,
    ) -> HistoryEntry | None:
        with Session(self.engine) as session:
            row = session.exec(
                select(ContentHistoryRow).where(
                    ContentHistoryRow.user_id == user_id,
                    ContentHistoryRow.request_id == request_id,
                ),
            ).one_or_none()
            return _to_history_entry(row) if row is not None else None

    def mark_history_viewed(self, *, user_id: str, entry_id: str) -> bool:
        """Set viewed/viewed_at once; returns False when already viewed or missing."""

        with Session(self.engine) as session:
            result = session.exec(
                sa_update(ContentHistoryRow)
                .where(
                    col(ContentHistoryRow.user_id) == user_id,
                    col(ContentHistoryRow.entry_id) == entry_id,
                    col(ContentHistoryRow.viewed).is_(False),
                )
                .values(viewed=True, viewed_at=self._db_now()),
            )
            if result.rowcount != 1:
                session.rollback()
                return False
            session.commit()
            return True

    def delete_history_entry(self, *, user_id: str, entry_id: str) -> bool:
        with Session(self.engine) as session:
            result = session.exec(
                sa_delete(ContentHistoryRow).where(
                    col(ContentHistoryRow.user_id) == user_id,
                    col(ContentHistoryRow.entry_id) == entry_id,
                ),
            )
            session.commit()
            return result.rowcount == 1

    def clear_history(self, *, user_id: str) -> int:
        with Session(self.engine) as session:
            result = session.exec(
                sa_delete(ContentHistoryRow).where(col(ContentHistoryRow.user_id) == user_id),
            )
            session.commit()
            return int(result.rowcount or 0)

    # recent articles

    def find_recent_article_by_title(self, *, user_id: str, title: str) -> RecentArticle | None:
        with Session(self.engine) as session:
            row = session.exec(
                select(RecentArticleRow)
                .where(
                    RecentArticleRow.user_id == user_id,
                    RecentArticleRow.title == title,
                )
                .limit(1),
            ).one_or_none()
            return _to_recent_article(row) if row is not None else None

    def insert_recent_article(self, *, user_id: str, content: ContentBody) -> RecentArticle:
        now = self._db_now()
        with Session(self.engine) as session:
            self._ensure_user(session=session, user_id=user_id)
            row = RecentArticleRow(
                article_id=uuid4().hex,
                user_id=user_id,
                title=content.title,
                content_json=json.dumps(content.to_dict(), ensure_ascii=False),
                read_at=now,
                created_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_recent_article(row)

    def list_recent_articles(
        self,
        *,
        user_id: str,
        limit: int | None = None,
        oldest_first: bool = False,
    ) -> list[RecentArticle]:
        if oldest_first:
            ordering = (col(RecentArticleRow.read_at).asc(), col(RecentArticleRow.seq).asc())
        else:
            ordering = (col(RecentArticleRow.read_at).desc(), col(RecentArticleRow.seq).desc())
        statement = (
            select(RecentArticleRow)
            .where(RecentArticleRow.user_id == user_id)
            .order_by(*ordering)
        )
        if limit is not None:
            statement = statement.limit(limit)
        with Session(self.engine) as session:
            rows = session.exec(statement).all()
        return [_to_recent_article(row) for row in rows]

    def delete_recent_articles(self, *, user_id: str, article_ids: list[str]) -> int:
        """Delete the given articles in one all-or-nothing statement."""

        if not article_ids:
            return 0
        with Session(self.engine) as session:
            result = session.exec(
                sa_delete(RecentArticleRow).where(
                    col(RecentArticleRow.user_id) == user_id,
                    col(RecentArticleRow.article_id).in_(article_ids),
                ),
            )
            if result.rowcount != len(article_ids):
                session.rollback()
                raise RuntimeError(
                    "Recent articles changed concurrently while deleting; "
                    f"expected {len(article_ids)} rows, matched {result.rowcount}.",
                )
            session.commit()
            return len(article_ids)

    def delete_recent_article(self, *, user_id: str, article_id: str) -> bool:
        with Session(self.engine) as session:
            result = session.exec(
                sa_delete(RecentArticleRow).where(
                    col(RecentArticleRow.user_id) == user_id,
                    col(RecentArticleRow.article_id) == article_id,
                ),
            )
            session.commit()
            return result.rowcount == 1

    def clear_recent_articles(self, *, user_id: str) -> int:
        with Session(self.engine) as session:
            result = session.exec(
                sa_delete(RecentArticleRow).where(col(RecentArticleRow.user_id) == user_id),
            )
            session.commit()
            return int(result.rowcount or 0)

    # saved content

    def set_saved(
        self,
        *,
        user_id: str,
        request_id: str,
        content: ContentBody | None,
        saved: bool,
    ) -> None:
        """Add/remove the saved record and mirror the history flag in one transaction."""

        with Session(self.engine) as session:
            self._ensure_user(session=session, user_id=user_id)
            row = session.exec(
                select(SavedContentRow).where(
                    SavedContentRow.user_id == user_id,
                    SavedContentRow.request_id == request_id,
                ),
            ).one_or_none()
            if saved:
                if content is None:
                    raise ValueError("Cannot save content without body.")
                if row is None:
                    row = SavedContentRow(
                        user_id=user_id,
                        request_id=request_id,
                        content_json="",
                        saved_at=self._db_now(),
                    )
                row.content_json = json.dumps(content.to_dict(), ensure_ascii=False)
                session.add(row)
            elif row is not None:
                session.delete(row)
            session.exec(
                sa_update(ContentHistoryRow)
                .where(
                    col(ContentHistoryRow.user_id) == user_id,
                    col(ContentHistoryRow.request_id) == request_id,
                )
                .values(saved=saved),
            )
            session.commit()

    def get_saved_content(self, *, user_id: str, request_id: str) -> SavedContentRecord | None:
        with Session(self.engine) as session:
            row = session.exec(
                select(SavedContentRow).where(
                    SavedContentRow.user_id == user_id,
                    SavedContentRow.request_id == request_id,
                ),
            ).one_or_none()
            return _to_saved_content(row) if row is not None else None

    def list_saved_content(self, *, user_id: str, limit: int = 50) -> list[SavedContentRecord]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(SavedContentRow)
                .where(SavedContentRow.user_id == user_id)
                .order_by(col(SavedContentRow.saved_at).desc())
                .limit(limit),
            ).all()
        return [_to_saved_content(row) for row in rows]

    def count_saved_content(self, *, user_id: str) -> int:
        with Session(self.engine) as session:
            total = session.exec(
                select(func.count())
                .select_from(SavedContentRow)
                .where(SavedContentRow.user_id == user_id),
            ).one()
        return int(total)

    def update_saved_notes(self, *, user_id: str, request_id: str, notes: str | None) -> bool:
        with Session(self.engine) as session:
            result = session.exec(
                sa_update(SavedContentRow)
                .where(
                    col(SavedContentRow.user_id) == user_id,
                    col(SavedContentRow.request_id) == request_id,
                )
                .values(notes=notes or ""),
            )
            session.commit()
            return result.rowcount == 1

    def _db_now(self) -> datetime:
        return to_db_datetime(self.now())

    def _ensure_user(
        self,
        *,
        session: Session,
        user_id: str,
        display_name: str | None = None,
    ) -> None:
        user = session.get(AppUser, user_id)
        if user is not None:
            if display_name and user.display_name != display_name:
                user.display_name = display_name
                session.add(user)
            return
        session.add(
            AppUser(
                user_id=user_id,
                display_name=display_name or user_id,
                created_at=self._db_now(),
            ),
        )
        session.flush()


def _load_content(raw: str | None) -> ContentBody | None:
    if not raw:
        return None
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        return None
    return ContentBody.from_dict(parsed)


def _to_request_marker(row: ContentRequestRow) -> ContentRequestMarker:
    categories = json.loads(row.categories_json) if row.categories_json else []
    return ContentRequestMarker(
        request_id=row.request_id,
        user_id=row.user_id,
        categories=tuple(str(item) for item in categories),
        daily_minutes=row.daily_minutes,
        history_count=row.history_count,
        requested_at=to_utc_aware_datetime(row.requested_at),
    )


def _to_generated_content(row: GeneratedContentRow) -> GeneratedContentRecord:
    return GeneratedContentRecord(
        request_id=row.request_id,
        user_id=row.user_id,
        status=row.status,
        generated_at=to_utc_aware_datetime(row.generated_at),
        content=_load_content(row.content_json),
        topic_summary=row.topic_summary,
        error=row.error,
        revision=row.revision,
    )


def _to_history_entry(row: ContentHistoryRow) -> HistoryEntry:
    return HistoryEntry(
        id=row.entry_id,
        request_id=row.request_id,
        topic_summary=row.topic_summary,
        category=row.category,
        generated_at=to_utc_aware_datetime(row.generated_at),
        viewed=bool(row.viewed),
        viewed_at=to_utc_aware_datetime(row.viewed_at) if row.viewed_at is not None else None,
        saved=bool(row.saved),
    )


def _to_recent_article(row: RecentArticleRow) -> RecentArticle:
    content = _load_content(row.content_json) or ContentBody(title=row.title, body="", category="")
    return RecentArticle(
        id=row.article_id,
        content=content,
        read_at=to_utc_aware_datetime(row.read_at),
        created_at=to_utc_aware_datetime(row.created_at),
    )


def _to_saved_content(row: SavedContentRow) -> SavedContentRecord:
    content = _load_content(row.content_json) or ContentBody(title="", body="", category="")
    return SavedContentRecord(
        user_id=row.user_id,
        request_id=row.request_id,
        content=content,
        saved_at=to_utc_aware_datetime(row.saved_at),
        notes=row.notes,
    )
