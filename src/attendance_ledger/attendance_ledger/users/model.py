from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class User:
    """Thực thể miền (domain): User.

    `external_id` is the opaque identity of the outer surface (chat account, API client).
    """

    user_id: int
    external_id: str
    username: str
    created_at: Optional[datetime] = None
