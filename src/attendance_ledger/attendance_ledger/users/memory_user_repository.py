from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, Optional

from .model import User
from .repository import UserRepository


class InMemoryUserRepository(UserRepository):
    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        self._by_id: dict[int, User] = {}
        self._lock = threading.Lock()
        self._now = now or datetime.now

    def get_by_external_id(self, external_id: str) -> Optional[User]:
        return next((u for u in self._by_id.values() if u.external_id == external_id), None)

    def get_or_create(self, *, external_id: str, username: str) -> User:
        with self._lock:
            existing = self.get_by_external_id(external_id)
            if existing:
                return existing
            user = User(
                user_id=len(self._by_id) + 1,
                external_id=external_id,
                username=username,
                created_at=self._now(),
            )
            self._by_id[user.user_id] = user
            return user
