"""Use-case services wiring the content components together."""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from learning_feed.config import Settings
from learning_feed.content.coordinator import GenerationCoordinator
from learning_feed.content.errors import PersistenceFailure
from learning_feed.content.history import HistoryStore
from learning_feed.content.models import (
    GenerationRequest,
    RequestState,
    UserProfile,
)
from learning_feed.content.reading import ReadingSession
from learning_feed.content.recent import RecentArticlesStore
from learning_feed.content.repository import ContentRepository
from learning_feed.content.saved import SavedContentCoordinator
from learning_feed.content.session import SessionRegistry, UserSession
from learning_feed.content.watcher import CompletionWatcher, WatchScope
from learning_feed.content.webhook import GenerationWebhookClient
from learning_feed.scheduling import Scheduler


class ContentService:
    """Coordinates generation, completion watching and reading state for one store."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        repository: ContentRepository,
        settings: Settings,
        scheduler: Scheduler,
        webhook: GenerationWebhookClient | None = None,
        sessions: SessionRegistry | None = None,
    ) -> None:
        self.repository = repository
        self.settings = settings
        self.scheduler = scheduler
        self.sessions = sessions or SessionRegistry()
        self.webhook = webhook or GenerationWebhookClient(
            settings.webhook.url,
            timeout_seconds=settings.webhook.timeout_seconds,
            max_retries=settings.webhook.max_retries,
        )
        self.history = HistoryStore(
            repository,
            topic_summary_max_chars=settings.history.topic_summary_max_chars,
        )
        self.recent = RecentArticlesStore(
            repository,
            capacity=settings.history.recent_articles_capacity,
        )
        self.saved = SavedContentCoordinator(repository)
        self.coordinator = GenerationCoordinator(repository=repository, webhook=self.webhook)
        self.watcher = CompletionWatcher(
            repository=repository,
            history=self.history,
            scheduler=scheduler,
            timeout_seconds=settings.generation.completion_timeout_seconds,
            poll_interval_seconds=settings.generation.poll_interval_seconds,
        )

    def profile(self) -> UserProfile:
        user = self.settings.user_context
        return UserProfile(
            user_id=user.user_id,
            display_name=user.user_name,
            categories=user.categories,
            daily_minutes=user.daily_minutes,
        )

    def session(self, user_id: str | None = None) -> UserSession:
        return self.sessions.get(user_id or self.settings.user_context.user_id)

    def start_generation(
        self,
        profile: UserProfile | None = None,
    ) -> tuple[GenerationRequest, WatchScope | None]:
        """Send one generation request with history context and start watching for it."""

        profile = profile or self.profile()
        try:
            self.repository.ensure_user(user_id=profile.user_id, display_name=profile.display_name)
        except SQLAlchemyError as error:
            raise PersistenceFailure(
                f"Failed to register user {profile.user_id!r}: {error}",
            ) from error
        session = self.session(profile.user_id)
        summaries = self.history.fetch_recent_summaries(
            user_id=profile.user_id,
            max_entries=self.settings.generation.history_summaries_limit,
        )
        request = self.coordinator.request_generation(session, profile, summaries)
        return request, self.watcher.sync(session)

    def generate_and_wait(self, profile: UserProfile | None = None) -> RequestState:
        """Request generation and block until the request completes, fails or times out."""

        request, scope = self.start_generation(profile)
        session = self.session(request.user_id)
        if scope is None:
            return session.state
        try:
            return scope.wait()
        finally:
            self.watcher.sync(session)

    def reading_session(self, user_id: str | None = None) -> ReadingSession:
        return ReadingSession(
            user_id=user_id or self.settings.user_context.user_id,
            history=self.history,
            recent=self.recent,
            saved=self.saved,
            scheduler=self.scheduler,
            view_confirm_seconds=self.settings.history.view_confirm_seconds,
        )

    def close(self) -> None:
        self.watcher.close()
        self.webhook.close()
