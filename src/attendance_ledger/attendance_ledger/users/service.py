from __future__ import annotations

from ..common.retry import read_with_retry
from ..common.validators import require_non_empty
from .model import User
from .repository import UserRepository


class UserService:
    """Use case: map an outer identity to a ledger user (created on first contact)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def resolve(self, external_id: str, username: str | None = None) -> User:
        external_id = require_non_empty(str(external_id or ""), "external_id")
        existing = read_with_retry(lambda: self._users.get_by_external_id(external_id))
        if existing:
            return existing
        return self._users.get_or_create(external_id=external_id, username=(username or "").strip() or external_id)
