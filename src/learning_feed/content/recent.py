"""Fixed-capacity store of the most recently read full articles."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from learning_feed.content.errors import HistoryReadFailure, PersistenceFailure
from learning_feed.content.models import ContentBody, RecentArticle
from learning_feed.content.repository import ContentRepository

logger = logging.getLogger(__name__)

MAX_RECENT_ARTICLES = 3


class RecentArticlesStore:
    """Keeps at most `capacity` articles per user, evicting oldest first.

    Capacity is enforced insert-then-trim: the store may hold one surplus row between
    the insert and the trim, and every read applies the limit itself.
    """

    def __init__(
        self,
        repository: ContentRepository,
        *,
        capacity: int = MAX_RECENT_ARTICLES,
    ) -> None:
        if capacity <= 0:
            raise ValueError("Recent articles capacity must be > 0.")
        self.repository = repository
        self.capacity = capacity

    def add_recent_article(self, *, user_id: str, content: ContentBody) -> str | None:
        """Insert a read article; returns None when its title is already stored."""

        try:
            duplicate = self.repository.find_recent_article_by_title(
                user_id=user_id,
                title=content.title,
            )
            if duplicate is not None:
                logger.info("Duplicate recent article skipped: %s", content.title)
                return None
            article = self.repository.insert_recent_article(user_id=user_id, content=content)
            self._trim(user_id=user_id)
        except (SQLAlchemyError, RuntimeError) as error:
            raise PersistenceFailure(f"Failed to add recent article: {error}") from error
        logger.info("Recent article added: %s", article.id)
        return article.id

    def get_recent_articles(self, *, user_id: str) -> list[RecentArticle]:
        try:
            return self.repository.list_recent_articles(user_id=user_id, limit=self.capacity)
        except SQLAlchemyError as error:
            raise HistoryReadFailure(f"Failed to read recent articles: {error}") from error

    def delete_recent_article(self, *, user_id: str, article_id: str) -> bool:
        try:
            deleted = self.repository.delete_recent_article(user_id=user_id, article_id=article_id)
        except SQLAlchemyError as error:
            raise PersistenceFailure(f"Failed to delete recent article: {error}") from error
        if deleted:
            logger.info("Recent article deleted: %s", article_id)
        return deleted

    def clear_recent_articles(self, *, user_id: str) -> int:
        try:
            cleared = self.repository.clear_recent_articles(user_id=user_id)
        except SQLAlchemyError as error:
            raise PersistenceFailure(f"Failed to clear recent articles: {error}") from error
        logger.info("Cleared %d recent articles for user %s", cleared, user_id)
        return cleared

    def _trim(self, *, user_id: str) -> None:
        articles = self.repository.list_recent_articles(user_id=user_id, oldest_first=True)
        surplus = len(articles) - self.capacity
        if surplus <= 0:
            return
        self.repository.delete_recent_articles(
            user_id=user_id,
            article_ids=[article.id for article in articles[:surplus]],
        )
        logger.info("Evicted %d old recent article(s) for user %s", surplus, user_id)
