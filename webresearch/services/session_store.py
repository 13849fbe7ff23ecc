"""Bounded in-memory table of research sessions."""

from __future__ import annotations

import threading
from collections import OrderedDict
from datetime import timedelta

from loguru import logger

from webresearch.config import settings
from webresearch.models.research import ResearchSession, utcnow


class SessionStore:
    """LRU session table with a size cap and an age cap.

    Only terminal sessions are ever evicted; a running session stays until it
    finishes, even if that temporarily pushes the table over ``max_sessions``.
    """

    def __init__(self, max_sessions: int | None = None, max_age_seconds: float | None = None):
        self.max_sessions = max(
            1, max_sessions if max_sessions is not None else settings.session_store_max_sessions
        )
        self.max_age = timedelta(
            seconds=max_age_seconds
            if max_age_seconds is not None
            else settings.session_store_max_age_seconds
        )
        self._sessions: OrderedDict[str, ResearchSession] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def add(self, session: ResearchSession) -> None:
        with self._lock:
            self._sessions[session.id] = session
            self._sessions.move_to_end(session.id)
            self._evict_locked()

    def get(self, session_id: str) -> ResearchSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions.move_to_end(session_id)
            return session

    def values(self) -> list[ResearchSession]:
        """Snapshot of all sessions, least recently used first."""
        with self._lock:
            return list(self._sessions.values())

    def prune(self) -> int:
        with self._lock:
            return self._evict_locked()

    def _evict_locked(self) -> int:
        now = utcnow()
        expired = [
            sid
            for sid, session in self._sessions.items()
            if session.is_terminal
            and session.end_time is not None
            and now - session.end_time > self.max_age
        ]
        for sid in expired:
            del self._sessions[sid]

        evicted = len(expired)
        if len(self._sessions) > self.max_sessions:
            for sid in [sid for sid, s in self._sessions.items() if s.is_terminal]:
                if len(self._sessions) <= self.max_sessions:
                    break
                del self._sessions[sid]
                evicted += 1

        if evicted:
            logger.debug(f"Evicted {evicted} finished research session(s)")
        return evicted
