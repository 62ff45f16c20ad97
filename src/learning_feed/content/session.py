"""Per-user request state container shared by the coordinator and the watcher."""

from __future__ import annotations

import logging
import threading

from learning_feed.content.models import (
    Completed,
    Failed,
    GeneratedContentRecord,
    Idle,
    Pending,
    RequestState,
    RequestStatus,
    TimedOut,
)

logger = logging.getLogger(__name__)


class UserSession:
    """Holds the request state of one user.

    The pending request id is the only shared mutable marker: `begin()` sets it, and the
    terminal transitions clear it. A terminal transition applies only while the session is
    pending on that same request id, so each request resolves at most once.
    """

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        self._lock = threading.Lock()
        self._state: RequestState = Idle()
        self._terminal = threading.Condition(self._lock)

    @property
    def state(self) -> RequestState:
        with self._lock:
            return self._state

    @property
    def status(self) -> RequestStatus:
        return self.state.status

    @property
    def pending_request_id(self) -> str | None:
        state = self.state
        return state.request_id if isinstance(state, Pending) else None

    def begin(self, request_id: str) -> str | None:
        """Move to pending; returns the blocking request id if one is already pending."""

        with self._lock:
            if isinstance(self._state, Pending):
                return self._state.request_id
            self._state = Pending(request_id=request_id)
        logger.info("Request %s pending for user %s", request_id, self.user_id)
        return None

    def complete(self, request_id: str, record: GeneratedContentRecord) -> bool:
        return self._resolve(request_id, Completed(request_id=request_id, record=record))

    def fail(self, request_id: str, reason: str) -> bool:
        return self._resolve(request_id, Failed(request_id=request_id, reason=reason))

    def time_out(self, request_id: str, reason: str) -> bool:
        return self._resolve(request_id, TimedOut(request_id=request_id, reason=reason))

    def wait_for_terminal(self, request_id: str, timeout: float | None = None) -> RequestState:
        """Block until `request_id` is no longer pending (or timeout elapses)."""

        with self._terminal:
            self._terminal.wait_for(
                lambda: not (
                    isinstance(self._state, Pending) and self._state.request_id == request_id
                ),
                timeout=timeout,
            )
            return self._state

    def _resolve(self, request_id: str, terminal: RequestState) -> bool:
        with self._terminal:
            current = self._state
            if not isinstance(current, Pending) or current.request_id != request_id:
                logger.debug(
                    "Ignoring %s for request %s; session state is %s",
                    terminal.status.value,
                    request_id,
                    current.status.value,
                )
                return False
            self._state = terminal
            self._terminal.notify_all()
        logger.info(
            "Request %s resolved as %s for user %s",
            request_id,
            terminal.status.value,
            self.user_id,
        )
        return True


class SessionRegistry:
    """Hands out exactly one session per user id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, UserSession] = {}

    def get(self, user_id: str) -> UserSession:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = UserSession(user_id)
                self._sessions[user_id] = session
            return session
