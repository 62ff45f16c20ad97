"""Single-flight generation request coordinator."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from learning_feed.content.errors import AlreadyInFlight, WebhookFailure
from learning_feed.content.models import GenerationRequest, UserProfile
from learning_feed.content.repository import ContentRepository
from learning_feed.content.session import UserSession
from learning_feed.content.webhook import GenerationWebhookClient
from learning_feed.storage.common import utc_now

logger = logging.getLogger(__name__)

STALE_CONTENT_AFTER = timedelta(hours=24)


class GenerationCoordinator:
    """Starts generation requests, at most one pending per user session."""

    def __init__(
        self,
        *,
        repository: ContentRepository,
        webhook: GenerationWebhookClient,
    ) -> None:
        self.repository = repository
        self.webhook = webhook

    def request_generation(
        self,
        session: UserSession,
        profile: UserProfile,
        history_summaries: list[str] | tuple[str, ...],
    ) -> GenerationRequest:
        """Mark the session pending and call the webhook once.

        Raises `AlreadyInFlight` without any webhook traffic when a request is pending,
        and `WebhookFailure` (after clearing the pending marker) when the call fails.
        """

        if session.user_id != profile.user_id:
            raise ValueError(
                f"Session user {session.user_id!r} does not match profile {profile.user_id!r}.",
            )

        request = GenerationRequest(
            request_id=str(uuid4()),
            user_id=profile.user_id,
            categories=tuple(profile.categories),
            daily_minutes=profile.daily_minutes,
            history_summaries=tuple(history_summaries),
            created_at=utc_now(),
        )
        blocking_request_id = session.begin(request.request_id)
        if blocking_request_id is not None:
            logger.info(
                "Rejecting generation for user %s: request %s still pending",
                profile.user_id,
                blocking_request_id,
            )
            raise AlreadyInFlight(user_id=profile.user_id, request_id=blocking_request_id)

        try:
            self.repository.record_content_request(request)
        except SQLAlchemyError as error:
            logger.warning(
                "Could not record content request marker %s: %s",
                request.request_id,
                error,
            )

        try:
            self.webhook.trigger(request, display_name=profile.display_name)
        except WebhookFailure as failure:
            session.fail(request.request_id, str(failure))
            raise
        return request


def should_trigger_generation(
    *,
    has_unread_content: bool,
    is_pending: bool,
    is_loading: bool,
    last_fetched_at: datetime | None,
    now: datetime | None = None,
) -> bool:
    """Auto-trigger policy: only when idle, nothing unread, and content is missing or stale."""

    if is_loading or is_pending or has_unread_content:
        return False
    if last_fetched_at is None:
        return True
    return last_fetched_at < (now or utc_now()) - STALE_CONTENT_AFTER
