from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.enums import VideoProvider
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import ClassSession
from .repository import SessionRepository

_SESSION_COLUMNS = (
    "session_id, course_id, title, description, start_time, end_time, video_link, host_video_link, "
    "meeting_id, recording_url, video_provider, is_active, activated_at, is_completed, created_at"
)


def _to_session(row: dict[str, Any]) -> ClassSession:
    return ClassSession(
        session_id=int(row["session_id"]),
        course_id=int(row["course_id"]),
        title=row["title"],
        description=row.get("description") or "",
        start_time=row["start_time"],
        end_time=row["end_time"],
        video_link=row.get("video_link") or "",
        host_video_link=row.get("host_video_link") or "",
        meeting_id=row.get("meeting_id") or "",
        recording_url=row.get("recording_url") or "",
        video_provider=VideoProvider(row.get("video_provider") or VideoProvider.JITSI.value),
        is_active=bool(row.get("is_active")),
        activated_at=row.get("activated_at"),
        is_completed=bool(row.get("is_completed")),
        created_at=row.get("created_at"),
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, session_id: int) -> Optional[ClassSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM class_sessions WHERE session_id=%s", (int(session_id),))
            row = fetchone(cur)
            return _to_session(row) if row else None

    def create(
        self,
        *,
        course_id: int,
        title: str,
        description: str,
        start_time: datetime,
        end_time: datetime,
        video_link: str,
        host_video_link: str,
        meeting_id: str,
        video_provider: VideoProvider,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO class_sessions(
                    course_id, title, description, start_time, end_time,
                    video_link, host_video_link, meeting_id, video_provider
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(course_id),
                    title,
                    description,
                    start_time,
                    end_time,
                    video_link,
                    host_video_link,
                    meeting_id,
                    video_provider.value,
                ),
            )
            return int(cur.lastrowid)

    def save(self, session: ClassSession) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_sessions
                SET title=%s, description=%s, start_time=%s, end_time=%s,
                    video_link=%s, host_video_link=%s, meeting_id=%s, recording_url=%s,
                    video_provider=%s, is_active=%s, activated_at=%s, is_completed=%s
                WHERE session_id=%s
                """,
                (
                    session.title,
                    session.description,
                    session.start_time,
                    session.end_time,
                    session.video_link,
                    session.host_video_link,
                    session.meeting_id,
                    session.recording_url,
                    session.video_provider.value,
                    1 if session.is_active else 0,
                    session.activated_at,
                    1 if session.is_completed else 0,
                    session.session_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, session_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM class_sessions WHERE session_id=%s", (int(session_id),))
            return cur.rowcount > 0

    def list_for_courses(self, course_ids: Sequence[int], *, newest_first: bool = False) -> Sequence[ClassSession]:
        ids = [int(i) for i in course_ids]
        if not ids:
            return []
        order = "DESC" if newest_first else "ASC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SESSION_COLUMNS} FROM class_sessions WHERE course_id IN ({in_clause(ids)}) "
                f"ORDER BY start_time {order}, session_id {order}",
                tuple(ids),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_upcoming(self, course_ids: Sequence[int], *, now: datetime, limit: int) -> Sequence[ClassSession]:
        ids = [int(i) for i in course_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS} FROM class_sessions
                WHERE course_id IN ({in_clause(ids)}) AND start_time > %s AND is_completed=0
                ORDER BY start_time ASC, session_id ASC
                LIMIT %s
                """,
                (*ids, now, int(limit)),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_past(self, course_ids: Sequence[int], *, now: datetime, limit: int) -> Sequence[ClassSession]:
        ids = [int(i) for i in course_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS} FROM class_sessions
                WHERE course_id IN ({in_clause(ids)}) AND end_time < %s
                ORDER BY start_time DESC, session_id DESC
                LIMIT %s
                """,
                (*ids, now, int(limit)),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_ids_for_course(self, course_id: int) -> list[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT session_id FROM class_sessions WHERE course_id=%s", (int(course_id),))
            return [int(r["session_id"]) for r in fetchall(cur)]

    def delete_for_course(self, course_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM class_sessions WHERE course_id=%s", (int(course_id),))
            return int(cur.rowcount)
