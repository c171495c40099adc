from __future__ import annotations

from typing import Any, Optional, Sequence

from ..core.enums import EnrollmentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Enrollment
from .repository import EnrollmentRepository

_ENROLLMENT_COLUMNS = "enrollment_id, course_id, student_id, status, grade, enrolled_at"


def _to_enrollment(row: dict[str, Any]) -> Enrollment:
    return Enrollment(
        enrollment_id=int(row["enrollment_id"]),
        course_id=int(row["course_id"]),
        student_id=int(row["student_id"]),
        status=EnrollmentStatus(row["status"]),
        grade=row.get("grade"),
        enrolled_at=row.get("enrolled_at"),
    )


class MySQLEnrollmentRepository(EnrollmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, student_id: int, course_id: int) -> Optional[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ENROLLMENT_COLUMNS} FROM enrollments WHERE student_id=%s AND course_id=%s",
                (int(student_id), int(course_id)),
            )
            row = fetchone(cur)
            return _to_enrollment(row) if row else None

    def create(self, *, student_id: int, course_id: int, status: EnrollmentStatus = EnrollmentStatus.ACTIVE) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO enrollments(student_id, course_id, status) VALUES(%s,%s,%s)",
                (int(student_id), int(course_id), status.value),
            )
            return int(cur.lastrowid)

    def set_status(self, enrollment_id: int, status: EnrollmentStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE enrollments SET status=%s WHERE enrollment_id=%s", (status.value, int(enrollment_id)))
            return cur.rowcount > 0

    def list_for_course(self, course_id: int, *, status: EnrollmentStatus = EnrollmentStatus.ACTIVE) -> Sequence[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ENROLLMENT_COLUMNS} FROM enrollments WHERE course_id=%s AND status=%s ORDER BY enrollment_id",
                (int(course_id), status.value),
            )
            return [_to_enrollment(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: int, *, status: EnrollmentStatus = EnrollmentStatus.ACTIVE) -> Sequence[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ENROLLMENT_COLUMNS} FROM enrollments WHERE student_id=%s AND status=%s ORDER BY enrollment_id",
                (int(student_id), status.value),
            )
            return [_to_enrollment(r) for r in fetchall(cur)]

    def delete_for_course(self, course_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM enrollments WHERE course_id=%s", (int(course_id),))
            return int(cur.rowcount)
