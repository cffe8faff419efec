"""
Bounded, per-session conversation memory.

Each session keeps at most ``max_size`` messages; older turns fall off the
front whole. Sessions are created on first append and live until cleared.
"""

from __future__ import annotations

import threading
from collections import deque

from cleaners.config import SESSION_MAX_MESSAGES, get_logger
from cleaners.core import Role, SessionMessage, StoreUnavailable

logger = get_logger(__name__)


class SessionStore:
    """Thread-safe in-memory session store with FIFO eviction.

    Parameters
    ----------
    max_size : int
        Maximum messages kept per session.

    A single coarse lock linearizes every operation. Session and message
    counts are small, so per-session sharding buys nothing.
    """

    def __init__(self, max_size: int = SESSION_MAX_MESSAGES):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._max_size = max_size
        self._lock = threading.Lock()
        self._sessions: dict[str, deque[SessionMessage]] = {}
        self._closed = False

    @property
    def max_size(self) -> int:
        return self._max_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_message(self, session_id: str, role: Role, content: str) -> None:
        """Append a message, creating the session if needed.

        Raises
        ------
        StoreUnavailable
            If the store has been closed.
        """
        message = SessionMessage(role=Role(role), content=content)
        with self._lock:
            self._check_open()
            messages = self._sessions.get(session_id)
            if messages is None:
                messages = deque(maxlen=self._max_size)
                self._sessions[session_id] = messages
            # deque(maxlen) drops from the left on overflow
            messages.append(message)

    def get_history(self, session_id: str) -> list[SessionMessage]:
        """Return a copy of the session's messages, oldest first.

        Unknown sessions yield an empty list.
        """
        with self._lock:
            self._check_open()
            return list(self._sessions.get(session_id, ()))

    def clear_session(self, session_id: str) -> None:
        """Remove all state for a session. No-op if absent."""
        with self._lock:
            self._check_open()
            if self._sessions.pop(session_id, None) is not None:
                logger.debug("Cleared session %s", session_id)

    def session_count(self) -> int:
        """Number of live sessions."""
        with self._lock:
            return len(self._sessions)

    def close(self) -> None:
        """Drop all sessions and reject further operations."""
        with self._lock:
            self._sessions.clear()
            self._closed = True
            logger.info("Session store closed")

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        """Must be called while holding self._lock."""
        if self._closed:
            raise StoreUnavailable("Session store is closed")


__all__ = ["SessionStore"]
