"""Join/leave bookkeeping for live sessions.

Records are opened when a student joins and closed when they leave or the
teacher ends the session. A rejoin reopens the same record and keeps the
minutes already attended, so each closed stint adds to the duration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import minutes_between, now_utc, round_half_up
from ..core.enums import AttendanceStatus
from ..core.exceptions import DuplicateKeyError
from .model import AttendanceRecord, SessionAttendanceStats
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass
class _StudentTotals:
    total_duration: int = 0
    join_count: int = 0
    first_join: Optional[datetime] = None
    last_leave: Optional[datetime] = None


class AttendanceTracker:
    def __init__(self, attendance: AttendanceRepository):
        self._attendance = attendance

    def record_attendance_on_join(
        self, session_id: int, student_id: int, *, now: datetime | None = None
    ) -> AttendanceRecord:
        now = now or now_utc()

        open_records = self._attendance.list_open(session_id, student_id)
        if open_records:
            return open_records[0]

        existing = self._attendance.get_for_session_student(session_id, student_id)
        if existing is None:
            try:
                attendance_id = self._attendance.create(
                    session_id=session_id,
                    student_id=student_id,
                    status=AttendanceStatus.ABSENT,
                    notes="",
                    join_time=now,
                    join_count=1,
                )
            except DuplicateKeyError:
                # a concurrent join created it first
                existing = self._attendance.get_for_session_student(session_id, student_id)
                if existing is None:
                    raise
                if existing.is_open:
                    return existing
            else:
                logger.info("Student %s joined session %s", student_id, session_id)
                return self._attendance.get_by_id(attendance_id)

        reopened = replace(existing, join_time=now, leave_time=None, join_count=existing.join_count + 1)
        self._attendance.update(reopened)
        logger.info("Student %s rejoined session %s", student_id, session_id)
        return reopened

    def update_attendance_on_leave(
        self, session_id: int, student_id: int, *, now: datetime | None = None
    ) -> Optional[AttendanceRecord]:
        now = now or now_utc()

        open_records = self._attendance.list_open(session_id, student_id)
        if not open_records:
            logger.info("No open attendance record for student %s in session %s", student_id, session_id)
            return None

        closed = self._close(open_records[0], now)
        logger.info("Student %s left session %s after %s minutes", student_id, session_id, closed.duration)
        return closed

    def close_all_attendance_records(self, session_id: int, *, now: datetime | None = None) -> int:
        now = now or now_utc()
        open_records = self._attendance.list_open(session_id)
        for record in open_records:
            self._close(record, now)
        logger.info("Closed %s attendance records for session %s", len(open_records), session_id)
        return len(open_records)

    def get_session_attendance_stats(self, session_id: int) -> SessionAttendanceStats:
        per_student: dict[int, _StudentTotals] = {}
        for record in self._attendance.list_for_session(session_id):
            totals = per_student.setdefault(record.student_id, _StudentTotals())
            totals.total_duration += record.duration
            totals.join_count += record.join_count
            if record.join_time and (totals.first_join is None or record.join_time < totals.first_join):
                totals.first_join = record.join_time
            if record.leave_time and (totals.last_leave is None or record.leave_time > totals.last_leave):
                totals.last_leave = record.leave_time

        if not per_student:
            return SessionAttendanceStats()

        durations = [t.total_duration for t in per_student.values()]
        return SessionAttendanceStats(
            unique_students=len(per_student),
            average_duration_minutes=round_half_up(sum(durations) / len(durations)),
            max_duration_minutes=max(durations),
            total_joins=sum(t.join_count for t in per_student.values()),
        )

    def _close(self, record: AttendanceRecord, now: datetime) -> AttendanceRecord:
        closed = replace(record, leave_time=now)
        if record.join_time is not None:
            closed = replace(closed, duration=record.duration + minutes_between(record.join_time, now))
        self._attendance.update(closed)
        return closed
