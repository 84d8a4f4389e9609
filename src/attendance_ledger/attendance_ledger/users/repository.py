from __future__ import annotations

from typing import Optional, Protocol

from .model import User


class UserRepository(Protocol):
    """Giao diện repository cho User.

    Lưu ý (DIP): tầng service phụ thuộc vào interface này, không phụ thuộc trực tiếp DB cụ thể.
    """

    def get_by_external_id(self, external_id: str) -> Optional[User]:
        raise NotImplementedError

    def get_or_create(self, *, external_id: str, username: str) -> User:
        raise NotImplementedError
