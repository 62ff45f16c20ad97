from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import allure
import httpx
import pytest

from learning_feed.content.coordinator import GenerationCoordinator, should_trigger_generation
from learning_feed.content.errors import AlreadyInFlight, WebhookFailure
from learning_feed.content.models import Failed, RequestStatus, UserProfile
from learning_feed.content.session import UserSession
from learning_feed.content.webhook import GenerationWebhookClient

pytestmark = [
    allure.epic("Content Generation"),
    allure.feature("Single-Flight Requests"),
]

WEBHOOK_URL = "https://hooks.example.com/generate"
PROFILE = UserProfile(
    user_id="u1",
    display_name="Ada",
    categories=("Science", "History"),
    daily_minutes=15,
)


class _RecordingHandler:
    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"accepted": True})


def _coordinator(repository, handler) -> GenerationCoordinator:
    webhook = GenerationWebhookClient(WEBHOOK_URL, transport=httpx.MockTransport(handler))
    return GenerationCoordinator(repository=repository, webhook=webhook)


def test_second_request_while_pending_makes_no_webhook_call(repository) -> None:
    handler = _RecordingHandler()
    coordinator = _coordinator(repository, handler)
    session = UserSession("u1")

    request = coordinator.request_generation(session, PROFILE, ["Volcanoes"])
    with pytest.raises(AlreadyInFlight) as exc_info:
        coordinator.request_generation(session, PROFILE, ["Volcanoes"])

    assert exc_info.value.request_id == request.request_id
    assert len(handler.requests) == 1
    assert session.pending_request_id == request.request_id


def test_webhook_payload_carries_request_id_and_history(repository) -> None:
    handler = _RecordingHandler()
    coordinator = _coordinator(repository, handler)

    request = coordinator.request_generation(
        UserSession("u1"),
        PROFILE,
        ["Volcanoes", "Tides"],
    )

    payload = json.loads(handler.requests[0].content)
    assert handler.requests[0].method == "POST"
    assert str(handler.requests[0].url) == WEBHOOK_URL
    assert payload["userId"] == "u1"
    assert payload["displayName"] == "Ada"
    assert payload["categories"] == ["Science", "History"]
    assert payload["dailyMinutes"] == 15
    assert payload["historySummaries"] == ["Volcanoes", "Tides"]
    assert payload["requestId"] == request.request_id
    assert "timestamp" in payload

    marker = repository.get_content_request(request_id=request.request_id)
    assert marker is not None
    assert marker.history_count == 2


def test_rejected_webhook_clears_pending_marker(repository) -> None:
    handler = _RecordingHandler(status_code=503)
    coordinator = _coordinator(repository, handler)
    session = UserSession("u1")

    with pytest.raises(WebhookFailure) as exc_info:
        coordinator.request_generation(session, PROFILE, [])

    assert exc_info.value.status_code == 503
    assert "HTTP 503" in str(exc_info.value)
    assert session.status is RequestStatus.ERROR
    assert session.pending_request_id is None

    handler.status_code = 200
    coordinator.request_generation(session, PROFILE, [])
    assert len(handler.requests) == 2


def test_network_error_is_reported_as_webhook_failure(repository) -> None:
    def _offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    coordinator = _coordinator(repository, _offline)
    session = UserSession("u1")

    with pytest.raises(WebhookFailure, match="No internet connection"):
        coordinator.request_generation(session, PROFILE, [])
    assert isinstance(session.state, Failed)


def test_missing_webhook_url_fails_without_traffic(repository) -> None:
    coordinator = GenerationCoordinator(
        repository=repository,
        webhook=GenerationWebhookClient(None),
    )
    session = UserSession("u1")

    with pytest.raises(WebhookFailure, match="Content service is not configured"):
        coordinator.request_generation(session, PROFILE, [])
    assert session.pending_request_id is None


def test_profile_must_match_session_user(repository) -> None:
    coordinator = _coordinator(repository, _RecordingHandler())

    with pytest.raises(ValueError, match="does not match"):
        coordinator.request_generation(UserSession("someone-else"), PROFILE, [])


def test_should_trigger_generation_policy() -> None:
    now = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)
    idle = {"has_unread_content": False, "is_pending": False, "is_loading": False}

    assert should_trigger_generation(**idle, last_fetched_at=None, now=now) is True
    assert (
        should_trigger_generation(**idle, last_fetched_at=now - timedelta(hours=25), now=now)
        is True
    )
    assert (
        should_trigger_generation(**idle, last_fetched_at=now - timedelta(hours=1), now=now)
        is False
    )
    assert (
        should_trigger_generation(
            has_unread_content=False,
            is_pending=True,
            is_loading=False,
            last_fetched_at=None,
            now=now,
        )
        is False
    )
    assert (
        should_trigger_generation(
            has_unread_content=True,
            is_pending=False,
            is_loading=False,
            last_fetched_at=None,
            now=now,
        )
        is False
    )
