from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import minutes_between
from ..core.enums import AttendanceStatus
from ..users.model import UserSummary


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's attendance in one session.

    Exactly one record exists per (session_id, student_id).
    `duration` is whole minutes attended; a rejoin adds its stint to the
    minutes already carried. `join_count` counts live joins.
    """

    attendance_id: int
    session_id: int
    student_id: int
    status: AttendanceStatus = AttendanceStatus.ABSENT
    notes: str = ""
    join_time: Optional[datetime] = None
    leave_time: Optional[datetime] = None
    duration: int = 0
    join_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.leave_time is None


def with_recomputed_duration(record: AttendanceRecord) -> AttendanceRecord:
    """Recompute duration when both times are set. Negative spans are kept as-is."""
    if record.join_time is None or record.leave_time is None:
        return record
    return replace(record, duration=minutes_between(record.join_time, record.leave_time))


@dataclass(frozen=True)
class MarkRequest:
    """One entry of a bulk mark as submitted by the teacher."""

    student_id: int
    status: AttendanceStatus
    notes: Optional[str] = None


@dataclass(frozen=True)
class BulkMarkRow:
    student_id: int
    status: AttendanceStatus
    notes: str
    join_time: Optional[datetime]


@dataclass(frozen=True)
class BulkWriteResult:
    matched: int = 0
    modified: int = 0
    upserted: int = 0


@dataclass(frozen=True)
class SessionInfo:
    session_id: int
    title: str
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class AttendanceWithStudent:
    record: AttendanceRecord
    student: Optional[UserSummary]


@dataclass(frozen=True)
class AttendanceWithSession:
    record: AttendanceRecord
    session: Optional[SessionInfo]


@dataclass(frozen=True)
class StudentAttendanceStats:
    student: UserSummary
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    total: int = 0
    percentage: int = 0


@dataclass(frozen=True)
class CourseAttendanceStats:
    course_id: int
    total_sessions: int
    total_students: int
    students: tuple[StudentAttendanceStats, ...]


@dataclass(frozen=True)
class SessionAttendanceStats:
    unique_students: int = 0
    average_duration_minutes: int = 0
    max_duration_minutes: int = 0
    total_joins: int = 0
