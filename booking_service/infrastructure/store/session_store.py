from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta

from booking_service.application.ports.session_store import SessionStorePort
from booking_service.domain.entities.booking_session import BookingSession


class MemorySessionStore(SessionStorePort):
    """Sessions idle longer than `idle_minutes` count as abandoned and are dropped."""

    def __init__(self, idle_minutes: int = 30) -> None:
        self._sessions: dict[str, BookingSession] = {}
        self._idle = timedelta(minutes=idle_minutes)
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def get(self, session_id: str, now: datetime) -> BookingSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if self._is_expired(session, now):
                del self._sessions[session_id]
                self._logger.info("Booking session abandoned", extra={"session_id": session_id})
                return None
            return session

    def save(self, session: BookingSession) -> None:
        with self._lock:
            self._sessions[session.session_id] = session

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if self._is_expired(s, now)]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            self._logger.info("Purged abandoned booking sessions", extra={"reason": f"count={len(expired)}"})
        return len(expired)

    def _is_expired(self, session: BookingSession, now: datetime) -> bool:
        return session.updated_at is not None and now - session.updated_at > self._idle
