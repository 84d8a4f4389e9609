from __future__ import annotations

import threading
from datetime import datetime
from typing import Optional, Protocol

from .model import CorrectionSession


class CorrectionSessionStore(Protocol):
    def get(self, session_id: str) -> Optional[CorrectionSession]:
        raise NotImplementedError

    def save(self, session: CorrectionSession) -> None:
        raise NotImplementedError

    def update(self, session: CorrectionSession) -> bool:
        """Replace a live session; False when it was taken or swept meanwhile."""
        raise NotImplementedError

    def take(self, session_id: str) -> Optional[CorrectionSession]:
        """Remove and return a session atomically; only one caller ever gets it."""
        raise NotImplementedError

    def sweep_expired(self, now: datetime) -> int:
        raise NotImplementedError


class InMemoryCorrectionSessionStore(CorrectionSessionStore):
    """Keyed table of in-flight flows, local to the process."""

    def __init__(self):
        self._sessions: dict[str, CorrectionSession] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[CorrectionSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def save(self, session: CorrectionSession) -> None:
        with self._lock:
            self._sessions[session.session_id] = session

    def update(self, session: CorrectionSession) -> bool:
        with self._lock:
            if session.session_id not in self._sessions:
                return False
            self._sessions[session.session_id] = session
            return True

    def take(self, session_id: str) -> Optional[CorrectionSession]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def sweep_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.is_expired(now)]
            for sid in expired:
                del self._sessions[sid]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
