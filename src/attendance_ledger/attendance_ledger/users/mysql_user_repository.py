from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_transaction, fetchone
from .model import User
from .repository import UserRepository


def _to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        external_id=row["external_id"],
        username=row["username"],
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_external_id(self, external_id: str) -> Optional[User]:
        with db_transaction(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT user_id, external_id, username, created_at FROM users WHERE external_id=%s",
                (external_id,),
            )
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_or_create(self, *, external_id: str, username: str) -> User:
        with db_transaction(self._conn_factory) as (_, cur):
            # INSERT IGNORE keeps two first contacts of the same identity from racing.
            cur.execute(
                "INSERT IGNORE INTO users(external_id, username) VALUES(%s,%s)",
                (external_id, username),
            )
            cur.execute(
                "SELECT user_id, external_id, username, created_at FROM users WHERE external_id=%s",
                (external_id,),
            )
            return _to_user(fetchone(cur))
