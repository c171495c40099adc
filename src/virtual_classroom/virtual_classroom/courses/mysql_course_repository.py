from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Course
from .repository import CourseRepository

_COURSE_COLUMNS = "course_id, title, description, teacher_id, subject, cover_image, start_date, end_date, created_at"


def _to_course(row: dict[str, Any]) -> Course:
    return Course(
        course_id=int(row["course_id"]),
        title=row["title"],
        description=row.get("description") or "",
        teacher_id=int(row["teacher_id"]),
        subject=row.get("subject") or "",
        cover_image=row.get("cover_image") or "",
        start_date=row["start_date"],
        end_date=row["end_date"],
        created_at=row.get("created_at"),
    )


class MySQLCourseRepository(CourseRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, course_id: int) -> Optional[Course]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COURSE_COLUMNS} FROM courses WHERE course_id=%s", (int(course_id),))
            row = fetchone(cur)
            return _to_course(row) if row else None

    def create(
        self,
        *,
        title: str,
        description: str,
        teacher_id: int,
        subject: str,
        cover_image: str,
        start_date: datetime,
        end_date: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO courses(title, description, teacher_id, subject, cover_image, start_date, end_date)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (title, description, int(teacher_id), subject, cover_image, start_date, end_date),
            )
            return int(cur.lastrowid)

    def update(self, course: Course) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE courses
                SET title=%s, description=%s, subject=%s, cover_image=%s, start_date=%s, end_date=%s
                WHERE course_id=%s
                """,
                (
                    course.title,
                    course.description,
                    course.subject,
                    course.cover_image,
                    course.start_date,
                    course.end_date,
                    course.course_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, course_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM courses WHERE course_id=%s", (int(course_id),))
            return cur.rowcount > 0

    def search(
        self,
        *,
        teacher_id: Optional[int] = None,
        subject: Optional[str] = None,
        text: Optional[str] = None,
    ) -> Sequence[Course]:
        where: list[str] = []
        params: list[Any] = []
        if teacher_id is not None:
            where.append("teacher_id=%s")
            params.append(int(teacher_id))
        if subject:
            where.append("LOWER(subject) LIKE %s")
            params.append(f"%{subject.lower()}%")
        if text:
            where.append("(LOWER(title) LIKE %s OR LOWER(description) LIKE %s)")
            params.extend([f"%{text.lower()}%"] * 2)

        sql = f"SELECT {_COURSE_COLUMNS} FROM courses"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC, course_id DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_course(r) for r in fetchall(cur)]

    def list_by_ids(self, course_ids: Sequence[int]) -> Sequence[Course]:
        ids = [int(i) for i in course_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COURSE_COLUMNS} FROM courses WHERE course_id IN ({in_clause(ids)}) "
                "ORDER BY created_at DESC, course_id DESC",
                tuple(ids),
            )
            return [_to_course(r) for r in fetchall(cur)]
