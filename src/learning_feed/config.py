"""Runtime configuration for content generation and reading history."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse


@dataclass(slots=True)
class WebhookSettings:
    """Outbound generation webhook settings."""

    url: str | None = None
    timeout_seconds: float = 15.0
    max_retries: int = 2


@dataclass(slots=True)
class GenerationSettings:
    """Generation request lifecycle settings."""

    completion_timeout_seconds: float = 60.0
    poll_interval_seconds: float = 1.0
    history_summaries_limit: int = 20


@dataclass(slots=True)
class HistorySettings:
    """Anti-repetition history and reading statistics settings."""

    topic_summary_max_chars: int = 100
    view_confirm_seconds: float = 5.0
    recent_articles_capacity: int = 3


@dataclass(slots=True)
class UserContextSettings:
    """User context settings."""

    user_id: str = "default_user"
    user_name: str = "Default User"
    categories: tuple[str, ...] = ()
    daily_minutes: int = 10


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".learning_feed.db")
    webhook: WebhookSettings = field(default_factory=WebhookSettings)
    generation: GenerationSettings = field(default_factory=GenerationSettings)
    history: HistorySettings = field(default_factory=HistorySettings)
    user_context: UserContextSettings = field(default_factory=UserContextSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("LEARNING_FEED_DB_PATH", ".learning_feed.db")),
            webhook=WebhookSettings(
                url=os.getenv("LEARNING_FEED_WEBHOOK_URL", "").strip() or None,
                timeout_seconds=_env_float("LEARNING_FEED_WEBHOOK_TIMEOUT_SECONDS", 15.0),
                max_retries=_env_int("LEARNING_FEED_WEBHOOK_MAX_RETRIES", 2),
            ),
            generation=GenerationSettings(
                completion_timeout_seconds=_env_float(
                    "LEARNING_FEED_COMPLETION_TIMEOUT_SECONDS",
                    60.0,
                ),
                poll_interval_seconds=_env_float("LEARNING_FEED_POLL_INTERVAL_SECONDS", 1.0),
                history_summaries_limit=_env_int("LEARNING_FEED_HISTORY_SUMMARIES_LIMIT", 20),
            ),
            history=HistorySettings(
                topic_summary_max_chars=_env_int("LEARNING_FEED_TOPIC_SUMMARY_MAX_CHARS", 100),
                view_confirm_seconds=_env_float("LEARNING_FEED_VIEW_CONFIRM_SECONDS", 5.0),
                recent_articles_capacity=_env_int("LEARNING_FEED_RECENT_ARTICLES_CAPACITY", 3),
            ),
            user_context=UserContextSettings(
                user_id=os.getenv("LEARNING_FEED_USER_ID", "default_user"),
                user_name=os.getenv("LEARNING_FEED_USER_NAME", "Default User"),
                categories=_collect_categories(),
                daily_minutes=_env_int("LEARNING_FEED_DAILY_MINUTES", 10),
            ),
        )

    def validate_for_generation(self) -> None:
        """Raise configuration error if generation cannot be requested with these settings."""

        if not self.webhook.url:
            raise ValueError(
                "Generation webhook URL is required. Set LEARNING_FEED_WEBHOOK_URL.",
            )
        _validate_webhook_url(self.webhook.url)
        if self.webhook.timeout_seconds <= 0:
            raise ValueError("LEARNING_FEED_WEBHOOK_TIMEOUT_SECONDS must be > 0.")
        if self.webhook.max_retries < 0:
            raise ValueError("LEARNING_FEED_WEBHOOK_MAX_RETRIES must be >= 0.")
        if self.generation.completion_timeout_seconds <= 0:
            raise ValueError("LEARNING_FEED_COMPLETION_TIMEOUT_SECONDS must be > 0.")
        if self.generation.poll_interval_seconds <= 0:
            raise ValueError("LEARNING_FEED_POLL_INTERVAL_SECONDS must be > 0.")
        if self.generation.history_summaries_limit < 0:
            raise ValueError("LEARNING_FEED_HISTORY_SUMMARIES_LIMIT must be >= 0.")
        if self.user_context.daily_minutes <= 0:
            raise ValueError("LEARNING_FEED_DAILY_MINUTES must be a positive integer.")

    def validate_for_history(self) -> None:
        """Raise configuration error for invalid history/reading limits."""

        if self.history.topic_summary_max_chars <= 0:
            raise ValueError("LEARNING_FEED_TOPIC_SUMMARY_MAX_CHARS must be > 0.")
        if self.history.view_confirm_seconds < 0:
            raise ValueError("LEARNING_FEED_VIEW_CONFIRM_SECONDS must be >= 0.")
        if self.history.recent_articles_capacity <= 0:
            raise ValueError("LEARNING_FEED_RECENT_ARTICLES_CAPACITY must be > 0.")


def _collect_categories() -> tuple[str, ...]:
    raw = os.getenv("LEARNING_FEED_CATEGORIES", "").strip()
    if not raw:
        return ()
    deduped: list[str] = []
    seen: set[str] = set()
    for part in raw.split(","):
        normalized = part.strip()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        deduped.append(normalized)
    return tuple(deduped)


def _validate_webhook_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid generation webhook URL: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"Invalid numeric value for {name}: {value!r}") from error
