from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import AttendanceRecord, BulkMarkRow, BulkWriteResult, with_recomputed_duration
from .repository import AttendanceRepository

_ATTENDANCE_COLUMNS = (
    "attendance_id, session_id, student_id, status, notes, join_time, leave_time, duration, join_count, created_at, updated_at"
)


def _to_record(row: dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(row["attendance_id"]),
        session_id=int(row["session_id"]),
        student_id=int(row["student_id"]),
        status=AttendanceStatus(row["status"]),
        notes=row.get("notes") or "",
        join_time=row.get("join_time"),
        leave_time=row.get("leave_time"),
        duration=int(row.get("duration") or 0),
        join_count=int(row.get("join_count") or 0),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ATTENDANCE_COLUMNS} FROM attendance_records WHERE attendance_id=%s",
                (int(attendance_id),),
            )
            row = fetchone(cur)
            return _to_record(row) if row else None

    def get_for_session_student(self, session_id: int, student_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ATTENDANCE_COLUMNS} FROM attendance_records WHERE session_id=%s AND student_id=%s",
                (int(session_id), int(student_id)),
            )
            row = fetchone(cur)
            return _to_record(row) if row else None

    def create(
        self,
        *,
        session_id: int,
        student_id: int,
        status: AttendanceStatus,
        notes: str,
        join_time: Optional[datetime],
        join_count: int = 0,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(session_id, student_id, status, notes, join_time, join_count)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(session_id), int(student_id), status.value, notes, join_time, int(join_count)),
            )
            return int(cur.lastrowid)

    def update(self, record: AttendanceRecord) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET status=%s, notes=%s, join_time=%s, leave_time=%s, duration=%s, join_count=%s
                WHERE attendance_id=%s
                """,
                (
                    record.status.value,
                    record.notes,
                    record.join_time,
                    record.leave_time,
                    int(record.duration),
                    int(record.join_count),
                    record.attendance_id,
                ),
            )
            return cur.rowcount > 0

    def bulk_upsert(self, session_id: int, rows: Sequence[BulkMarkRow]) -> BulkWriteResult:
        matched = modified = upserted = 0
        # One connection, one commit: either every row lands or none does.
        with db_cursor(self._conn_factory) as (_, cur):
            for row in rows:
                cur.execute(
                    f"""
                    SELECT {_ATTENDANCE_COLUMNS} FROM attendance_records
                    WHERE session_id=%s AND student_id=%s
                    FOR UPDATE
                    """,
                    (int(session_id), int(row.student_id)),
                )
                found = fetchone(cur)
                if found is None:
                    cur.execute(
                        """
                        INSERT INTO attendance_records(session_id, student_id, status, notes, join_time)
                        VALUES(%s,%s,%s,%s,%s)
                        """,
                        (int(session_id), int(row.student_id), row.status.value, row.notes, row.join_time),
                    )
                    upserted += 1
                    continue

                matched += 1
                current = _to_record(found)
                target = with_recomputed_duration(
                    AttendanceRecord(
                        attendance_id=current.attendance_id,
                        session_id=current.session_id,
                        student_id=current.student_id,
                        status=row.status,
                        notes=row.notes,
                        join_time=row.join_time,
                        leave_time=current.leave_time,
                        duration=current.duration,
                        join_count=current.join_count,
                    )
                )
                if (target.status, target.notes, target.join_time, target.duration) == (
                    current.status,
                    current.notes,
                    current.join_time,
                    current.duration,
                ):
                    continue

                cur.execute(
                    """
                    UPDATE attendance_records
                    SET status=%s, notes=%s, join_time=%s, duration=%s
                    WHERE attendance_id=%s
                    """,
                    (target.status.value, target.notes, target.join_time, target.duration, target.attendance_id),
                )
                modified += 1

        return BulkWriteResult(matched=matched, modified=modified, upserted=upserted)

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ATTENDANCE_COLUMNS} FROM attendance_records WHERE session_id=%s ORDER BY attendance_id",
                (int(session_id),),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: int, session_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        ids = [int(i) for i in session_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ATTENDANCE_COLUMNS} FROM attendance_records
                WHERE student_id=%s AND session_id IN ({in_clause(ids)})
                ORDER BY attendance_id
                """,
                (int(student_id), *ids),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_open(self, session_id: int, student_id: Optional[int] = None) -> Sequence[AttendanceRecord]:
        sql = f"SELECT {_ATTENDANCE_COLUMNS} FROM attendance_records WHERE session_id=%s AND leave_time IS NULL"
        params: list[Any] = [int(session_id)]
        if student_id is not None:
            sql += " AND student_id=%s"
            params.append(int(student_id))
        sql += " ORDER BY join_time DESC, attendance_id DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_record(r) for r in fetchall(cur)]

    def count_by_status(
        self, session_ids: Sequence[int], student_ids: Sequence[int]
    ) -> dict[tuple[int, AttendanceStatus], int]:
        s_ids = [int(i) for i in session_ids]
        u_ids = [int(i) for i in student_ids]
        if not s_ids or not u_ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT student_id, status, COUNT(*) AS n
                FROM attendance_records
                WHERE session_id IN ({in_clause(s_ids)}) AND student_id IN ({in_clause(u_ids)})
                GROUP BY student_id, status
                """,
                (*s_ids, *u_ids),
            )
            return {(int(r["student_id"]), AttendanceStatus(r["status"])): int(r["n"]) for r in fetchall(cur)}

    def delete_for_session(self, session_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_records WHERE session_id=%s", (int(session_id),))
            return int(cur.rowcount)

    def delete_for_sessions(self, session_ids: Sequence[int]) -> int:
        ids = [int(i) for i in session_ids]
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DELETE FROM attendance_records WHERE session_id IN ({in_clause(ids)})", tuple(ids))
            return int(cur.rowcount)
