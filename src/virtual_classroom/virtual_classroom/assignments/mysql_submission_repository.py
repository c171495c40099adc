from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.enums import SubmissionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Submission
from .repository import SubmissionRepository

_SUBMISSION_COLUMNS = (
    "submission_id, assignment_id, student_id, file_url, comment, submitted_at, status, is_late, "
    "grade, feedback, graded_by, graded_at"
)


def _to_submission(row: dict[str, Any]) -> Submission:
    grade = row.get("grade")
    graded_by = row.get("graded_by")
    return Submission(
        submission_id=int(row["submission_id"]),
        assignment_id=int(row["assignment_id"]),
        student_id=int(row["student_id"]),
        file_url=row["file_url"],
        comment=row.get("comment") or "",
        submitted_at=row["submitted_at"],
        status=SubmissionStatus(row["status"]),
        is_late=bool(row.get("is_late")),
        grade=float(grade) if grade is not None else None,
        feedback=row.get("feedback") or "",
        graded_by=int(graded_by) if graded_by is not None else None,
        graded_at=row.get("graded_at"),
    )


class MySQLSubmissionRepository(SubmissionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, submission_id: int) -> Optional[Submission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SUBMISSION_COLUMNS} FROM submissions WHERE submission_id=%s", (int(submission_id),))
            row = fetchone(cur)
            return _to_submission(row) if row else None

    def get_for_assignment_student(self, assignment_id: int, student_id: int) -> Optional[Submission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SUBMISSION_COLUMNS} FROM submissions WHERE assignment_id=%s AND student_id=%s",
                (int(assignment_id), int(student_id)),
            )
            row = fetchone(cur)
            return _to_submission(row) if row else None

    def create(
        self,
        *,
        assignment_id: int,
        student_id: int,
        file_url: str,
        comment: str,
        submitted_at: datetime,
        status: SubmissionStatus,
        is_late: bool,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO submissions(assignment_id, student_id, file_url, comment, submitted_at, status, is_late)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(assignment_id), int(student_id), file_url, comment, submitted_at, status.value, 1 if is_late else 0),
            )
            return int(cur.lastrowid)

    def update(self, submission: Submission) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE submissions
                SET file_url=%s, comment=%s, submitted_at=%s, status=%s, is_late=%s,
                    grade=%s, feedback=%s, graded_by=%s, graded_at=%s
                WHERE submission_id=%s
                """,
                (
                    submission.file_url,
                    submission.comment,
                    submission.submitted_at,
                    submission.status.value,
                    1 if submission.is_late else 0,
                    submission.grade,
                    submission.feedback,
                    submission.graded_by,
                    submission.graded_at,
                    submission.submission_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, submission_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM submissions WHERE submission_id=%s", (int(submission_id),))
            return cur.rowcount > 0

    def list_for_assignment(self, assignment_id: int) -> Sequence[Submission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SUBMISSION_COLUMNS} FROM submissions WHERE assignment_id=%s ORDER BY submitted_at DESC",
                (int(assignment_id),),
            )
            return [_to_submission(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: int, assignment_ids: Optional[Sequence[int]] = None) -> Sequence[Submission]:
        sql = f"SELECT {_SUBMISSION_COLUMNS} FROM submissions WHERE student_id=%s"
        params: list[Any] = [int(student_id)]
        if assignment_ids is not None:
            ids = [int(i) for i in assignment_ids]
            if not ids:
                return []
            sql += f" AND assignment_id IN ({in_clause(ids)})"
            params.extend(ids)
        sql += " ORDER BY submitted_at DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_submission(r) for r in fetchall(cur)]

    def delete_for_assignments(self, assignment_ids: Sequence[int]) -> int:
        ids = [int(i) for i in assignment_ids]
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DELETE FROM submissions WHERE assignment_id IN ({in_clause(ids)})", tuple(ids))
            return int(cur.rowcount)
