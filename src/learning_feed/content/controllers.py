"""Controllers for content CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from learning_feed.config import Settings
from learning_feed.content.errors import (
    GenerationError,
    GenerationTimedOut,
    PersistenceFailure,
)
from learning_feed.content.models import (
    Completed,
    ContentBody,
    Failed,
    GeneratedContentStatus,
    Pending,
    TimedOut,
)
from learning_feed.content.repository import ContentRepository
from learning_feed.content.services import ContentService
from learning_feed.scheduling import ThreadingScheduler


@dataclass(slots=True)
class ContentDbCommand:
    """CLI input for commands that only need the store."""

    db_path: Path | None


@dataclass(slots=True)
class GenerateCommand:
    """CLI input for a generation request."""

    db_path: Path | None
    wait: bool = True


@dataclass(slots=True)
class CompleteContentCommand:
    """CLI input standing in for the worker writing a completed record."""

    db_path: Path | None
    request_id: str
    title: str
    body: str
    category: str
    summary: str = ""
    topic_summary: str | None = None


@dataclass(slots=True)
class FailContentCommand:
    """CLI input standing in for the worker writing an error record."""

    db_path: Path | None
    request_id: str
    error: str | None


@dataclass(slots=True)
class ListCommand:
    """CLI input for bounded listings."""

    db_path: Path | None
    limit: int


@dataclass(slots=True)
class MarkViewedCommand:
    """CLI input for marking a history entry viewed."""

    db_path: Path | None
    entry_id: str | None = None
    request_id: str | None = None


@dataclass(slots=True)
class AddRecentCommand:
    """CLI input for remembering a read article."""

    db_path: Path | None
    title: str
    body: str
    category: str


@dataclass(slots=True)
class ToggleSavedCommand:
    """CLI input for toggling the saved flag of generated content."""

    db_path: Path | None
    request_id: str


class ContentCliController:
    """Coordinates generation, history, recent-article and saved-content CLI operations."""

    def generate(self, command: GenerateCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate_for_generation()
        with _service(settings) as service:
            if not command.wait:
                request, _ = service.start_generation()
                return [
                    f"Generation requested: request_id={request.request_id} "
                    f"history={len(request.history_summaries)}",
                ]
            state = service.generate_and_wait()

        if isinstance(state, Completed):
            content = state.record.content
            lines = [f"Content ready: request_id={state.request_id}"]
            if content is not None:
                lines.append(f"Title: {content.title}")
                lines.append(f"Category: {content.category}")
                if content.summary:
                    lines.append(f"Summary: {content.summary}")
            return lines
        if isinstance(state, TimedOut):
            raise GenerationTimedOut(state.reason, request_id=state.request_id)
        if isinstance(state, Failed):
            raise GenerationError(state.reason, request_id=state.request_id)
        request_id = state.request_id if isinstance(state, Pending) else "-"
        return [f"Generation still pending: request_id={request_id}"]

    def complete_content(self, command: CompleteContentCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        user_id = settings.user_context.user_id
        with _service(settings) as service:
            record = service.repository.put_generated_content(
                user_id=user_id,
                request_id=command.request_id,
                status=GeneratedContentStatus.COMPLETED.value,
                content=ContentBody(
                    title=command.title,
                    body=command.body,
                    category=command.category,
                    summary=command.summary,
                ),
                topic_summary=command.topic_summary,
            )
            entry_id = service.watcher.record_history(user_id=user_id, record=record)
        return [
            f"Content completed: request_id={record.request_id} revision={record.revision}",
            f"History entry: {entry_id or '-'}",
        ]

    def latest_content(self, command: ContentDbCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        user_id = settings.user_context.user_id
        with _service(settings) as service:
            record = service.repository.get_latest_generated_content(user_id=user_id)
            if record is None or record.content is None:
                return ["No completed content yet."]
            saved = service.saved.is_saved(user_id=user_id, request_id=record.request_id)
        return [
            f"Latest content: request_id={record.request_id} "
            f"generated_at={record.generated_at.isoformat()} saved={'yes' if saved else 'no'}",
            f"Title: {record.content.title}",
            f"Category: {record.content.category}",
        ]

    def fail_content(self, command: FailContentCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            record = repository.put_generated_content(
                user_id=settings.user_context.user_id,
                request_id=command.request_id,
                status=GeneratedContentStatus.ERROR.value,
                error=command.error,
            )
        return [f"Content failed: request_id={record.request_id} error={record.error or '-'}"]

    def list_history(self, command: ListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            entries = service.history.fetch_full_history(
                user_id=settings.user_context.user_id,
                max_entries=command.limit,
            )

        lines = [f"History entries: {len(entries)}"]
        for entry in entries:
            viewed = entry.viewed_at.isoformat() if entry.viewed_at is not None else "-"
            lines.append(
                f"  {entry.id} request={entry.request_id} category={entry.category} "
                f"generated_at={entry.generated_at.isoformat()} viewed_at={viewed} "
                f"saved={'yes' if entry.saved else 'no'} topic={entry.topic_summary}",
            )
        return lines

    def history_summaries(self, command: ListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            summaries = service.history.fetch_recent_summaries(
                user_id=settings.user_context.user_id,
                max_entries=command.limit,
            )
        return [f"History summaries: {len(summaries)}", *[f"  {item}" for item in summaries]]

    def mark_viewed(self, command: MarkViewedCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        user_id = settings.user_context.user_id
        with _service(settings) as service:
            entry_id = command.entry_id
            if entry_id is None and command.request_id is not None:
                entry_id = service.history.find_entry_id(
                    user_id=user_id,
                    request_id=command.request_id,
                )
            if entry_id is None:
                return ["History entry not found."]
            marked = service.history.mark_viewed(user_id=user_id, entry_id=entry_id)
        if marked:
            return [f"History entry marked viewed: {entry_id}"]
        return [f"History entry already viewed or missing: {entry_id}"]

    def history_stats(self, command: ContentDbCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        user_id = settings.user_context.user_id
        with _service(settings) as service:
            weekly = service.history.weekly_read_count(user_id=user_id)
            saved = service.saved.saved_count(user_id=user_id)
        return [f"Read this week: {weekly}", f"Saved: {saved}"]

    def clear_history(self, command: ContentDbCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            cleared = service.history.clear_history(user_id=settings.user_context.user_id)
        return [f"History entries cleared: {cleared}"]

    def list_recent(self, command: ContentDbCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate_for_history()
        with _service(settings) as service:
            articles = service.recent.get_recent_articles(user_id=settings.user_context.user_id)

        lines = [f"Recent articles: {len(articles)}"]
        for article in articles:
            lines.append(
                f"  {article.id} read_at={article.read_at.isoformat()} "
                f"category={article.content.category} title={article.content.title}",
            )
        return lines

    def add_recent(self, command: AddRecentCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate_for_history()
        with _service(settings) as service:
            article_id = service.recent.add_recent_article(
                user_id=settings.user_context.user_id,
                content=ContentBody(
                    title=command.title,
                    body=command.body,
                    category=command.category,
                ),
            )
        if article_id is None:
            return [f"Article already in recent list: {command.title}"]
        return [f"Recent article added: {article_id}"]

    def clear_recent(self, command: ContentDbCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            cleared = service.recent.clear_recent_articles(user_id=settings.user_context.user_id)
        return [f"Recent articles cleared: {cleared}"]

    def list_saved(self, command: ListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            records = service.saved.list_saved(
                user_id=settings.user_context.user_id,
                max_entries=command.limit,
            )

        lines = [f"Saved content: {len(records)}"]
        for record in records:
            lines.append(
                f"  {record.request_id} saved_at={record.saved_at.isoformat()} "
                f"title={record.content.title} notes={record.notes or '-'}",
            )
        return lines

    def toggle_saved(self, command: ToggleSavedCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        user_id = settings.user_context.user_id
        with _service(settings) as service:
            record = service.repository.get_generated_content(
                user_id=user_id,
                request_id=command.request_id,
            )
            if record is None or record.content is None:
                return [f"Generated content not found: {command.request_id}"]
            result = service.saved.toggle_saved(
                user_id=user_id,
                request_id=command.request_id,
                content=record.content,
                currently_saved=service.saved.is_saved(
                    user_id=user_id,
                    request_id=command.request_id,
                ),
            )
            count = service.saved.saved_count(user_id=user_id)
        if result.error is not None:
            raise PersistenceFailure(str(result.error))
        state = "saved" if result.attempted_saved else "unsaved"
        return [f"Content {state}: {command.request_id}", f"Saved: {count}"]


@contextmanager
def _repository(settings: Settings) -> Iterator[ContentRepository]:
    repository = ContentRepository(db_path=settings.db_path)
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()


@contextmanager
def _service(settings: Settings) -> Iterator[ContentService]:
    scheduler = ThreadingScheduler()
    with _repository(settings) as repository:
        service = ContentService(repository=repository, settings=settings, scheduler=scheduler)
        try:
            yield service
        finally:
            service.close()
            scheduler.shutdown()
