from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..auth.policy import Capability, course_capability, is_self, require_member_or_owner, require_owner
from ..common.datetime_utils import now_utc, round_half_up
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, DuplicateKeyError, InvalidStateError, NotFoundError
from ..courses.model import Course
from ..courses.repository import CourseRepository, EnrollmentRepository
from ..courses.service import get_course_or_404, is_actively_enrolled
from ..sessions.model import ClassSession
from ..sessions.repository import SessionRepository
from ..users.model import User, UserSummary
from ..users.repository import UserRepository
from .model import (
    AttendanceRecord,
    AttendanceWithSession,
    AttendanceWithStudent,
    BulkMarkRow,
    BulkWriteResult,
    CourseAttendanceStats,
    MarkRequest,
    SessionAttendanceStats,
    SessionInfo,
    StudentAttendanceStats,
    with_recomputed_duration,
)
from .repository import AttendanceRepository
from .tracker import AttendanceTracker

logger = logging.getLogger(__name__)

_UNSET = object()


class AttendanceService:
    """Teacher-facing attendance ledger: marking, corrections, and reports."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        sessions: SessionRepository,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        users: UserRepository,
        tracker: AttendanceTracker,
    ):
        self._attendance = attendance
        self._sessions = sessions
        self._courses = courses
        self._enrollments = enrollments
        self._users = users
        self._tracker = tracker

    def _session_and_course(self, session_id: int, *, missing: str = "Session not found") -> tuple[ClassSession, Course]:
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError(missing)
        course = self._courses.get_by_id(session.course_id)
        if not course:
            raise NotFoundError("Course not found")
        return session, course

    def _enrolled(self, student_id: int, course_id: int) -> bool:
        return is_actively_enrolled(self._enrollments, student_id=student_id, course_id=course_id)

    # --- marking ---

    def mark_attendance(
        self,
        caller: User,
        session_id: int,
        student_id: int,
        status: AttendanceStatus,
        notes: Optional[str] = None,
        *,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        now = now or now_utc()
        session, course = self._session_and_course(session_id)
        require_owner(caller, course, "Not authorized to mark attendance for this session")
        if not self._enrolled(student_id, course.course_id):
            raise InvalidStateError("Student is not enrolled in this course")

        existing = self._attendance.get_for_session_student(session.session_id, student_id)
        if existing is None:
            try:
                attendance_id = self._attendance.create(
                    session_id=session.session_id,
                    student_id=student_id,
                    status=status,
                    notes=notes or "",
                    join_time=now if status == AttendanceStatus.PRESENT else None,
                )
                return self._attendance.get_by_id(attendance_id)
            except DuplicateKeyError:
                existing = self._attendance.get_for_session_student(session.session_id, student_id)
                if existing is None:
                    raise
                logger.info("Attendance for student %s in session %s created concurrently, updating", student_id, session_id)

        updated = replace(existing, status=status)
        if notes:
            updated = replace(updated, notes=notes)
        if status == AttendanceStatus.PRESENT and updated.join_time is None:
            updated = replace(updated, join_time=now)
        updated = with_recomputed_duration(updated)
        self._attendance.update(updated)
        return updated

    def mark_bulk_attendance(
        self,
        caller: User,
        session_id: int,
        records: Sequence[MarkRequest],
        *,
        now: datetime | None = None,
    ) -> BulkWriteResult:
        now = now or now_utc()
        session, course = self._session_and_course(session_id)
        require_owner(caller, course, "Not authorized to mark attendance for this session")

        # Reject the whole batch before any write.
        for item in records:
            if not self._enrolled(item.student_id, course.course_id):
                raise InvalidStateError(f"Student {item.student_id} is not enrolled in this course")

        rows = [
            BulkMarkRow(
                student_id=item.student_id,
                status=item.status,
                notes=item.notes or "",
                join_time=now if item.status == AttendanceStatus.PRESENT else None,
            )
            for item in records
        ]
        result = self._attendance.bulk_upsert(session.session_id, rows)
        logger.info(
            "Bulk attendance for session %s: matched=%s modified=%s upserted=%s",
            session.session_id,
            result.matched,
            result.modified,
            result.upserted,
        )
        return result

    # --- queries ---

    def get_session_attendance(self, caller: User, session_id: int) -> list[AttendanceWithStudent]:
        session, course = self._session_and_course(session_id)
        enrolled = caller.role == Role.STUDENT and self._enrolled(caller.user_id, course.course_id)
        require_member_or_owner(
            caller, course, enrolled=enrolled, message="Not authorized to view attendance for this session"
        )

        records = self._attendance.list_for_session(session.session_id)
        students = self._summaries([r.student_id for r in records])
        return [AttendanceWithStudent(record=r, student=students.get(r.student_id)) for r in records]

    def get_student_course_attendance(self, caller: User, student_id: int, course_id: int) -> list[AttendanceWithSession]:
        course = get_course_or_404(self._courses, course_id)
        if not self._enrolled(student_id, course.course_id):
            raise InvalidStateError("Student is not enrolled in this course")

        capability = course_capability(caller, course, enrolled=True)
        if capability == Capability.MEMBER and not is_self(caller, student_id):
            raise AuthorizationError("Not authorized to view another student's attendance")
        if capability == Capability.NONE:
            raise AuthorizationError("Not authorized to view attendance for this course")

        sessions = {s.session_id: s for s in self._sessions.list_for_courses([course.course_id])}
        records = self._attendance.list_for_student(student_id, list(sessions))
        return [
            AttendanceWithSession(record=r, session=_session_info(sessions.get(r.session_id)))
            for r in records
        ]

    def get_course_attendance_stats(self, caller: User, course_id: int) -> CourseAttendanceStats:
        course = get_course_or_404(self._courses, course_id)
        require_owner(caller, course, "Not authorized to view attendance stats for this course")

        session_ids = self._sessions.list_ids_for_course(course.course_id)
        student_ids = [e.student_id for e in self._enrollments.list_for_course(course.course_id)]
        students = self._summaries(student_ids)
        counts = self._attendance.count_by_status(session_ids, student_ids)

        rows: list[StudentAttendanceStats] = []
        for student_id in student_ids:
            present = counts.get((student_id, AttendanceStatus.PRESENT), 0)
            absent = counts.get((student_id, AttendanceStatus.ABSENT), 0)
            late = counts.get((student_id, AttendanceStatus.LATE), 0)
            excused = counts.get((student_id, AttendanceStatus.EXCUSED), 0)
            total = present + absent + late + excused
            rows.append(
                StudentAttendanceStats(
                    student=students.get(student_id) or UserSummary(user_id=student_id, name="", email=""),
                    present=present,
                    absent=absent,
                    late=late,
                    excused=excused,
                    total=total,
                    percentage=round_half_up((present + late) / total * 100) if total > 0 else 0,
                )
            )

        return CourseAttendanceStats(
            course_id=course.course_id,
            total_sessions=len(session_ids),
            total_students=len(student_ids),
            students=tuple(rows),
        )

    def get_session_stats(self, caller: User, session_id: int) -> SessionAttendanceStats:
        session, course = self._session_and_course(session_id)
        require_owner(caller, course, "Not authorized to view attendance for this session")
        return self._tracker.get_session_attendance_stats(session.session_id)

    # --- corrections ---

    def update_attendance(
        self,
        caller: User,
        attendance_id: int,
        *,
        status: Optional[AttendanceStatus] = None,
        notes=_UNSET,
        join_time: Optional[datetime] = None,
        leave_time: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Apply the provided fields. `notes` may be set to an empty string; leave it out to keep it."""
        record = self._attendance.get_by_id(attendance_id)
        if not record:
            raise NotFoundError("Attendance record not found")
        _, course = self._session_and_course(record.session_id, missing="Associated session not found")
        require_owner(caller, course, "Not authorized to update this attendance record")

        updated = record
        if status is not None:
            updated = replace(updated, status=status)
        if notes is not _UNSET:
            updated = replace(updated, notes=notes or "")
        if join_time is not None:
            updated = replace(updated, join_time=join_time)
        if leave_time is not None:
            updated = replace(updated, leave_time=leave_time)
        updated = with_recomputed_duration(updated)

        self._attendance.update(updated)
        return updated

    def _summaries(self, user_ids: Sequence[int]) -> dict[int, UserSummary]:
        return {s.user_id: s for s in self._users.list_summaries(sorted(set(user_ids)))}


def _session_info(session: Optional[ClassSession]) -> Optional[SessionInfo]:
    if session is None:
        return None
    return SessionInfo(
        session_id=session.session_id,
        title=session.title,
        start_time=session.start_time,
        end_time=session.end_time,
    )
