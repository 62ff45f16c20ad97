"""HTTP client for the fire-and-forget generation webhook."""

from __future__ import annotations

import logging

import httpx

from learning_feed.content.errors import WebhookFailure
from learning_feed.content.models import GenerationRequest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_USER_AGENT = "LearningFeed/0.1"
NOT_CONFIGURED_MESSAGE = "Content service is not configured"
NETWORK_ERROR_MESSAGE = "No internet connection. Please check your network."


class GenerationWebhookClient:
    """Posts generation requests; a 2xx reply only means the job was accepted."""

    def __init__(
        self,
        url: str | None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        self._client = httpx.Client(
            timeout=timeout,
            headers={"User-Agent": user_agent},
            transport=transport or httpx.HTTPTransport(retries=max_retries),
            follow_redirects=True,
        )

    def trigger(self, request: GenerationRequest, *, display_name: str) -> None:
        """Send one request; raises `WebhookFailure` unless the webhook accepted it."""

        if not self.url:
            logger.error("Generation webhook URL is not configured")
            raise WebhookFailure(NOT_CONFIGURED_MESSAGE, request_id=request.request_id)

        logger.info(
            "Triggering content generation request_id=%s user_id=%s categories=%d "
            "daily_minutes=%d history=%d",
            request.request_id,
            request.user_id,
            len(request.categories),
            request.daily_minutes,
            len(request.history_summaries),
        )
        try:
            response = self._client.post(
                self.url,
                json=request.to_webhook_payload(display_name=display_name),
            )
        except httpx.TimeoutException as exc:
            logger.warning("Timeout posting generation request %s", request.request_id)
            raise WebhookFailure(
                "Content service timed out. Please try again.",
                request_id=request.request_id,
            ) from exc
        except httpx.TransportError as exc:
            logger.warning(
                "Network error posting generation request %s: %s",
                request.request_id,
                exc,
            )
            raise WebhookFailure(NETWORK_ERROR_MESSAGE, request_id=request.request_id) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "HTTP error posting generation request %s: %s",
                request.request_id,
                exc,
            )
            raise WebhookFailure(str(exc), request_id=request.request_id) from exc

        if not response.is_success:
            logger.error(
                "Generation webhook rejected request %s: HTTP %d",
                request.request_id,
                response.status_code,
            )
            raise WebhookFailure(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                request_id=request.request_id,
                status_code=response.status_code,
            )
        logger.info("Generation request accepted: %s", request.request_id)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GenerationWebhookClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
