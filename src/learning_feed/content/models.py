"""Domain models for generation requests, history and reading state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class RequestStatus(str, Enum):
    """Process-local lifecycle of a user's generation request."""

    IDLE = "idle"
    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"
    TIMED_OUT = "timedOut"


class GeneratedContentStatus(str, Enum):
    """Statuses the external worker writes on a generated content record."""

    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class UserProfile:
    """Personalization inputs sent with each generation request."""

    user_id: str
    display_name: str
    categories: tuple[str, ...]
    daily_minutes: int


@dataclass(slots=True, frozen=True)
class GenerationRequest:
    """Immutable generation request created by an explicit user action."""

    request_id: str
    user_id: str
    categories: tuple[str, ...]
    daily_minutes: int
    history_summaries: tuple[str, ...]
    created_at: datetime

    def to_webhook_payload(self, *, display_name: str) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "displayName": display_name,
            "categories": list(self.categories),
            "dailyMinutes": self.daily_minutes,
            "historySummaries": list(self.history_summaries),
            "requestId": self.request_id,
            "timestamp": self.created_at.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class ContentBody:
    """Full article body as produced by the generation worker."""

    title: str
    body: str
    category: str
    summary: str = ""
    reading_minutes: int | None = None
    sources: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "summary": self.summary,
            "body": self.body,
            "category": self.category,
            "readingMinutes": self.reading_minutes,
            "sources": list(self.sources),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ContentBody:
        reading_minutes = payload.get("readingMinutes")
        return cls(
            title=str(payload.get("title") or ""),
            summary=str(payload.get("summary") or ""),
            body=str(payload.get("body") or ""),
            category=str(payload.get("category") or ""),
            reading_minutes=int(reading_minutes) if reading_minutes is not None else None,
            sources=tuple(str(item) for item in payload.get("sources") or ()),
        )


@dataclass(slots=True, frozen=True)
class GeneratedContentRecord:
    """Record written by the external worker, keyed by user id and request id."""

    request_id: str
    user_id: str
    status: str
    generated_at: datetime
    content: ContentBody | None = None
    topic_summary: str | None = None
    error: str | None = None
    revision: int = 1


@dataclass(slots=True, frozen=True)
class ContentRequestMarker:
    """Audit marker for one triggered request."""

    request_id: str
    user_id: str
    categories: tuple[str, ...]
    daily_minutes: int
    history_count: int
    requested_at: datetime


@dataclass(slots=True)
class HistoryEntryCreate:
    """Input for appending one anti-repetition history entry."""

    request_id: str
    topic_summary: str
    category: str


@dataclass(slots=True, frozen=True)
class HistoryEntry:
    """Stored anti-repetition history entry."""

    id: str
    request_id: str
    topic_summary: str
    category: str
    generated_at: datetime
    viewed: bool
    viewed_at: datetime | None
    saved: bool

    @property
    def read_at(self) -> datetime:
        """Read timestamp; legacy entries without viewed_at fall back to generated_at."""

        return self.viewed_at or self.generated_at


@dataclass(slots=True, frozen=True)
class RecentArticle:
    """One of the most recently read full articles."""

    id: str
    content: ContentBody
    read_at: datetime
    created_at: datetime


@dataclass(slots=True, frozen=True)
class SavedContentRecord:
    """Saved content; the record existing means the content is saved."""

    user_id: str
    request_id: str
    content: ContentBody
    saved_at: datetime
    notes: str | None = None


@dataclass(slots=True, frozen=True)
class Idle:
    status: RequestStatus = field(default=RequestStatus.IDLE, init=False)


@dataclass(slots=True, frozen=True)
class Pending:
    request_id: str
    status: RequestStatus = field(default=RequestStatus.PENDING, init=False)


@dataclass(slots=True, frozen=True)
class Completed:
    request_id: str
    record: GeneratedContentRecord
    status: RequestStatus = field(default=RequestStatus.COMPLETED, init=False)


@dataclass(slots=True, frozen=True)
class Failed:
    """Webhook or worker-reported failure."""

    request_id: str | None
    reason: str
    status: RequestStatus = field(default=RequestStatus.ERROR, init=False)


@dataclass(slots=True, frozen=True)
class TimedOut:
    request_id: str
    reason: str
    status: RequestStatus = field(default=RequestStatus.TIMED_OUT, init=False)


RequestState = Idle | Pending | Completed | Failed | TimedOut
