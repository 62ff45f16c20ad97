from __future__ import annotations

from pathlib import Path

import allure
import pytest

from learning_feed.config import Settings, WebhookSettings

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Environment Settings"),
]


def test_defaults_match_documented_limits(monkeypatch) -> None:
    for name in (
        "LEARNING_FEED_DB_PATH",
        "LEARNING_FEED_WEBHOOK_URL",
        "LEARNING_FEED_COMPLETION_TIMEOUT_SECONDS",
        "LEARNING_FEED_RECENT_ARTICLES_CAPACITY",
        "LEARNING_FEED_CATEGORIES",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.db_path == Path(".learning_feed.db")
    assert settings.webhook.url is None
    assert settings.generation.completion_timeout_seconds == 60.0
    assert settings.generation.history_summaries_limit == 20
    assert settings.history.topic_summary_max_chars == 100
    assert settings.history.view_confirm_seconds == 5.0
    assert settings.history.recent_articles_capacity == 3
    assert settings.user_context.categories == ()


def test_from_env_reads_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LEARNING_FEED_WEBHOOK_URL", " https://hooks.example.com/generate ")
    monkeypatch.setenv("LEARNING_FEED_COMPLETION_TIMEOUT_SECONDS", "90")
    monkeypatch.setenv("LEARNING_FEED_USER_ID", "ada")
    monkeypatch.setenv("LEARNING_FEED_CATEGORIES", "Science, History,,Science")
    monkeypatch.setenv("LEARNING_FEED_DAILY_MINUTES", "25")

    settings = Settings.from_env(db_path=tmp_path / "feed.db")

    assert settings.db_path == tmp_path / "feed.db"
    assert settings.webhook.url == "https://hooks.example.com/generate"
    assert settings.generation.completion_timeout_seconds == 90.0
    assert settings.user_context.user_id == "ada"
    assert settings.user_context.categories == ("Science", "History")
    assert settings.user_context.daily_minutes == 25


def test_invalid_numeric_env_names_the_variable(monkeypatch) -> None:
    monkeypatch.setenv("LEARNING_FEED_RECENT_ARTICLES_CAPACITY", "three")

    with pytest.raises(ValueError, match="LEARNING_FEED_RECENT_ARTICLES_CAPACITY"):
        Settings.from_env()


def test_validate_for_generation_requires_webhook_url() -> None:
    with pytest.raises(ValueError, match="LEARNING_FEED_WEBHOOK_URL"):
        Settings().validate_for_generation()


def test_validate_for_generation_rejects_non_http_url() -> None:
    settings = Settings(webhook=WebhookSettings(url="ftp://hooks.example.com/generate"))

    with pytest.raises(ValueError, match="Invalid generation webhook URL"):
        settings.validate_for_generation()


def test_validate_for_history_rejects_zero_capacity(monkeypatch) -> None:
    monkeypatch.setenv("LEARNING_FEED_RECENT_ARTICLES_CAPACITY", "0")

    with pytest.raises(ValueError, match="RECENT_ARTICLES_CAPACITY"):
        Settings.from_env().validate_for_history()
