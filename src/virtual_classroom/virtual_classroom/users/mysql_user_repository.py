from __future__ import annotations

from typing import Any, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import User, UserSummary
from .repository import UserRepository

_USER_COLUMNS = "user_id, name, email, password_hash, role, bio, profile_picture, email_verified, created_at"


def _to_user(row: dict[str, Any]) -> User:
    return User(
        user_id=int(row["user_id"]),
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        bio=row.get("bio") or "",
        profile_picture=row.get("profile_picture") or "",
        email_verified=bool(row.get("email_verified")),
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE email=%s", (email,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def create_user(self, *, name: str, email: str, password_hash: str, role: Role) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(name, email, password_hash, role)
                VALUES(%s,%s,%s,%s)
                """,
                (name, email, password_hash, role.value),
            )
            return int(cur.lastrowid)

    def update_profile(self, user_id: int, *, name: str, bio: str, profile_picture: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET name=%s, bio=%s, profile_picture=%s WHERE user_id=%s",
                (name, bio, profile_picture, int(user_id)),
            )
            return cur.rowcount > 0

    def set_password_hash(self, user_id: int, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET password_hash=%s WHERE user_id=%s", (password_hash, int(user_id)))
            return cur.rowcount > 0

    def set_email_verified(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET email_verified=1 WHERE user_id=%s", (int(user_id),))
            return cur.rowcount > 0

    def list_users(self, *, role: Optional[Role] = None) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            if role is None:
                cur.execute(f"SELECT {_USER_COLUMNS} FROM users ORDER BY user_id DESC")
            else:
                cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE role=%s ORDER BY user_id DESC", (role.value,))
            return [_to_user(r) for r in fetchall(cur)]

    def list_summaries(self, user_ids: Sequence[int]) -> Sequence[UserSummary]:
        ids = [int(i) for i in user_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT user_id, name, email, profile_picture FROM users WHERE user_id IN ({in_clause(ids)})",
                tuple(ids),
            )
            return [
                UserSummary(
                    user_id=int(r["user_id"]),
                    name=r["name"],
                    email=r["email"],
                    profile_picture=r.get("profile_picture") or "",
                )
                for r in fetchall(cur)
            ]
