"""
Per-user dialogue session storage with an inactivity TTL.

Expiry is lazy: a session idle for longer than the TTL is discarded the
next time its user is looked up, and a fresh IDLE session takes its
place. `sweep()` lets an external reaper drop stale entries in bulk.

Each user also gets a lock so that two turns for the same user never
interleave; turns for different users never contend.
"""

import logging
import threading
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from table_assistant.config import settings
from table_assistant.schemas.conversation_schema import Session

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """What the dialogue driver needs from session storage."""

    def get(self, user_id: int) -> Session: ...

    def put(self, user_id: int, session: Session) -> None: ...

    def delete(self, user_id: int) -> None: ...

    def lock_for(self, user_id: int) -> threading.Lock: ...


class InMemorySessionStore:
    """Process-local SessionStore backed by a dict."""

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._ttl = timedelta(
            seconds=settings.session.timeout_seconds if ttl_seconds is None else ttl_seconds
        )
        self._clock = clock
        self._sessions: dict[int, Session] = {}
        self._guard = threading.Lock()
        self._user_locks: defaultdict[int, threading.Lock] = defaultdict(threading.Lock)

    def get(self, user_id: int) -> Session:
        """Return the user's live session, or a fresh IDLE one."""
        now = self._clock()
        with self._guard:
            session = self._sessions.get(user_id)
            if session is not None and now - session.last_updated < self._ttl:
                return session
            if session is not None:
                logger.debug("Session for user %d expired", user_id)
                del self._sessions[user_id]
        return Session(last_updated=now)

    def put(self, user_id: int, session: Session) -> None:
        session.last_updated = self._clock()
        with self._guard:
            self._sessions[user_id] = session

    def delete(self, user_id: int) -> None:
        with self._guard:
            self._sessions.pop(user_id, None)

    def lock_for(self, user_id: int) -> threading.Lock:
        with self._guard:
            return self._user_locks[user_id]

    def sweep(self) -> int:
        """Drop every expired session. Returns how many were removed."""
        now = self._clock()
        with self._guard:
            stale = [
                uid for uid, s in self._sessions.items() if now - s.last_updated >= self._ttl
            ]
            for uid in stale:
                del self._sessions[uid]
        if stale:
            logger.info("Swept %d stale session(s)", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)
