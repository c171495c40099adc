from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json_list, fetchall, fetchone, in_clause, load_json_list
from .model import Assignment
from .repository import AssignmentRepository

_ASSIGNMENT_COLUMNS = (
    "assignment_id, course_id, teacher_id, title, description, due_date, total_points, attachments, created_at"
)


def _to_assignment(row: dict[str, Any]) -> Assignment:
    return Assignment(
        assignment_id=int(row["assignment_id"]),
        course_id=int(row["course_id"]),
        teacher_id=int(row["teacher_id"]),
        title=row["title"],
        description=row.get("description") or "",
        due_date=row["due_date"],
        total_points=float(row["total_points"]),
        attachments=tuple(load_json_list(row.get("attachments"))),
        created_at=row.get("created_at"),
    )


class MySQLAssignmentRepository(AssignmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, assignment_id: int) -> Optional[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_ASSIGNMENT_COLUMNS} FROM assignments WHERE assignment_id=%s", (int(assignment_id),))
            row = fetchone(cur)
            return _to_assignment(row) if row else None

    def create(
        self,
        *,
        course_id: int,
        teacher_id: int,
        title: str,
        description: str,
        due_date: datetime,
        total_points: float,
        attachments: Sequence[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO assignments(course_id, teacher_id, title, description, due_date, total_points, attachments)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(course_id),
                    int(teacher_id),
                    title,
                    description,
                    due_date,
                    float(total_points),
                    dump_json_list(attachments),
                ),
            )
            return int(cur.lastrowid)

    def update(self, assignment: Assignment) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE assignments
                SET title=%s, description=%s, due_date=%s, total_points=%s, attachments=%s
                WHERE assignment_id=%s
                """,
                (
                    assignment.title,
                    assignment.description,
                    assignment.due_date,
                    float(assignment.total_points),
                    dump_json_list(assignment.attachments),
                    assignment.assignment_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, assignment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM assignments WHERE assignment_id=%s", (int(assignment_id),))
            return cur.rowcount > 0

    def list_for_courses(self, course_ids: Sequence[int]) -> Sequence[Assignment]:
        ids = [int(i) for i in course_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ASSIGNMENT_COLUMNS} FROM assignments WHERE course_id IN ({in_clause(ids)}) "
                "ORDER BY due_date ASC, assignment_id ASC",
                tuple(ids),
            )
            return [_to_assignment(r) for r in fetchall(cur)]

    def list_by_teacher(self, teacher_id: int) -> Sequence[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ASSIGNMENT_COLUMNS} FROM assignments WHERE teacher_id=%s ORDER BY due_date ASC, assignment_id ASC",
                (int(teacher_id),),
            )
            return [_to_assignment(r) for r in fetchall(cur)]

    def list_ids_for_course(self, course_id: int) -> list[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT assignment_id FROM assignments WHERE course_id=%s", (int(course_id),))
            return [int(r["assignment_id"]) for r in fetchall(cur)]

    def delete_for_course(self, course_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM assignments WHERE course_id=%s", (int(course_id),))
            return int(cur.rowcount)
