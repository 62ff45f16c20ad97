"""Error taxonomy for the content generation lifecycle and stores."""

from __future__ import annotations


class ContentError(Exception):
    """Base class for content lifecycle errors surfaced to callers."""


class AlreadyInFlight(ContentError):
    """A generation request is already pending for this user."""

    def __init__(self, *, user_id: str, request_id: str) -> None:
        super().__init__(
            f"A content request is already in progress for user {user_id!r} "
            f"(request_id={request_id}).",
        )
        self.user_id = user_id
        self.request_id = request_id


class WebhookFailure(ContentError):
    """The generation webhook could not be reached or rejected the request."""

    def __init__(self, message: str, *, request_id: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.request_id = request_id
        self.status_code = status_code


class GenerationError(ContentError):
    """The worker accepted the request but reported a failure."""

    def __init__(self, message: str, *, request_id: str) -> None:
        super().__init__(message)
        self.request_id = request_id


class GenerationTimedOut(GenerationError):
    """No terminal record arrived before the completion deadline."""


class PersistenceFailure(ContentError):
    """A document store write failed."""


class HistoryReadFailure(ContentError):
    """Reading history from the document store failed."""
