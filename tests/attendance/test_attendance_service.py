from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.virtual_classroom.virtual_classroom.attendance.model import MarkRequest
from src.virtual_classroom.virtual_classroom.core.enums import AttendanceStatus, Role
from src.virtual_classroom.virtual_classroom.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
)


def test_mark_creates_present_record_with_join_time(container, teacher, student, session, fixed_now):
    record = container.attendance_service.mark_attendance(
        teacher, session.session_id, student.user_id, AttendanceStatus.PRESENT, "on time", now=fixed_now
    )

    assert record.status == AttendanceStatus.PRESENT
    assert record.notes == "on time"
    assert record.join_time == fixed_now
    assert record.leave_time is None


def test_mark_absent_leaves_join_time_unset(container, teacher, student, session, fixed_now):
    record = container.attendance_service.mark_attendance(
        teacher, session.session_id, student.user_id, AttendanceStatus.ABSENT, now=fixed_now
    )

    assert record.join_time is None
    assert record.notes == ""


def test_remark_updates_existing_record_and_keeps_join_time(container, teacher, student, session, fixed_now):
    svc = container.attendance_service
    first = svc.mark_attendance(teacher, session.session_id, student.user_id, AttendanceStatus.PRESENT, "hi", now=fixed_now)
    later = fixed_now + timedelta(minutes=20)

    second = svc.mark_attendance(teacher, session.session_id, student.user_id, AttendanceStatus.LATE, now=later)

    assert second.attendance_id == first.attendance_id
    assert second.status == AttendanceStatus.LATE
    assert second.join_time == fixed_now
    # empty notes keep the stored ones
    assert second.notes == "hi"
    assert len(container.attendance_repo.list_for_session(session.session_id)) == 1


def test_mark_by_other_teacher_is_forbidden(container, other_teacher, student, session):
    with pytest.raises(AuthorizationError):
        container.attendance_service.mark_attendance(
            other_teacher, session.session_id, student.user_id, AttendanceStatus.PRESENT
        )

    assert container.attendance_repo.list_for_session(session.session_id) == []


def test_mark_student_not_enrolled(container, teacher, outsider, session):
    with pytest.raises(InvalidStateError) as exc:
        container.attendance_service.mark_attendance(teacher, session.session_id, outsider.user_id, AttendanceStatus.PRESENT)

    assert exc.value.message == "Student is not enrolled in this course"


def test_mark_unknown_session(container, teacher, student):
    with pytest.raises(NotFoundError):
        container.attendance_service.mark_attendance(teacher, 999, student.user_id, AttendanceStatus.PRESENT)


def test_mark_retries_as_update_when_a_concurrent_insert_wins(container, teacher, student, session, fixed_now):
    repo = container.attendance_repo
    repo.create(
        session_id=session.session_id,
        student_id=student.user_id,
        status=AttendanceStatus.ABSENT,
        notes="",
        join_time=None,
    )
    real_lookup = repo.get_for_session_student
    calls = []

    def racing_lookup(session_id, student_id):
        calls.append((session_id, student_id))
        # the first lookup happens before the competing insert is visible
        if len(calls) == 1:
            return None
        return real_lookup(session_id, student_id)

    repo.get_for_session_student = racing_lookup

    record = container.attendance_service.mark_attendance(
        teacher, session.session_id, student.user_id, AttendanceStatus.PRESENT, now=fixed_now
    )

    assert record.status == AttendanceStatus.PRESENT
    assert record.join_time == fixed_now
    assert len(repo.list_for_session(session.session_id)) == 1


def _second_student(container, course):
    other = container.users_repo.add("Ada Student", "ada@example.com", Role.STUDENT)
    container.enrollments_repo.add(other, course)
    return other


def test_bulk_reports_upserted_then_matched_and_modified(container, teacher, student, course, session, fixed_now):
    ada = _second_student(container, course)
    svc = container.attendance_service
    rows = [
        MarkRequest(student_id=student.user_id, status=AttendanceStatus.PRESENT),
        MarkRequest(student_id=ada.user_id, status=AttendanceStatus.ABSENT, notes="sick"),
    ]

    first = svc.mark_bulk_attendance(teacher, session.session_id, rows, now=fixed_now)
    second = svc.mark_bulk_attendance(teacher, session.session_id, rows, now=fixed_now + timedelta(minutes=5))

    assert (first.matched, first.modified, first.upserted) == (0, 0, 2)
    # the present row gets a fresh join_time, the absent row is unchanged
    assert (second.matched, second.modified, second.upserted) == (2, 1, 0)
    present = container.attendance_repo.get_for_session_student(session.session_id, student.user_id)
    assert present.join_time == fixed_now + timedelta(minutes=5)


def test_bulk_non_present_status_clears_join_time(container, teacher, student, session, fixed_now):
    svc = container.attendance_service
    svc.mark_bulk_attendance(
        teacher, session.session_id, [MarkRequest(student_id=student.user_id, status=AttendanceStatus.PRESENT)], now=fixed_now
    )

    result = svc.mark_bulk_attendance(
        teacher,
        session.session_id,
        [MarkRequest(student_id=student.user_id, status=AttendanceStatus.EXCUSED, notes="doctor")],
        now=fixed_now + timedelta(minutes=5),
    )

    record = container.attendance_repo.get_for_session_student(session.session_id, student.user_id)
    assert (result.matched, result.modified, result.upserted) == (1, 1, 0)
    assert record.status == AttendanceStatus.EXCUSED
    assert record.join_time is None
    assert record.notes == "doctor"


def test_bulk_rejects_whole_batch_when_one_student_is_not_enrolled(container, teacher, student, outsider, session):
    rows = [
        MarkRequest(student_id=student.user_id, status=AttendanceStatus.PRESENT),
        MarkRequest(student_id=outsider.user_id, status=AttendanceStatus.PRESENT),
    ]

    with pytest.raises(InvalidStateError) as exc:
        container.attendance_service.mark_bulk_attendance(teacher, session.session_id, rows)

    assert exc.value.message == f"Student {outsider.user_id} is not enrolled in this course"
    assert container.attendance_repo.list_for_session(session.session_id) == []


def test_bulk_write_failure_leaves_no_partial_rows(container, teacher, student, course, session):
    ada = _second_student(container, course)
    container.attendance_repo.fail_bulk_on = ada.user_id
    rows = [
        MarkRequest(student_id=student.user_id, status=AttendanceStatus.PRESENT),
        MarkRequest(student_id=ada.user_id, status=AttendanceStatus.PRESENT),
    ]

    with pytest.raises(RuntimeError):
        container.attendance_service.mark_bulk_attendance(teacher, session.session_id, rows)

    assert container.attendance_repo.list_for_session(session.session_id) == []


def test_course_stats_counts_and_rounds_percentage(container, teacher, student, course):
    ada = _second_student(container, course)
    sessions = [container.sessions_repo.add(course, f"Week {i}", start=datetime(2026, 3, i + 1, 9)) for i in range(8)]
    repo = container.attendance_repo

    for s, status in zip(sessions, [AttendanceStatus.PRESENT, AttendanceStatus.LATE, AttendanceStatus.ABSENT, AttendanceStatus.EXCUSED]):
        repo.create(session_id=s.session_id, student_id=student.user_id, status=status, notes="", join_time=None)
    # 1 of 8 attended: 12.5% rounds half-up to 13
    for i, s in enumerate(sessions):
        status = AttendanceStatus.PRESENT if i == 0 else AttendanceStatus.ABSENT
        repo.create(session_id=s.session_id, student_id=ada.user_id, status=status, notes="", join_time=None)

    stats = container.attendance_service.get_course_attendance_stats(teacher, course.course_id)

    assert stats.total_sessions == 8
    assert stats.total_students == 2
    by_student = {row.student.user_id: row for row in stats.students}
    sam = by_student[student.user_id]
    assert (sam.present, sam.late, sam.absent, sam.excused, sam.total) == (1, 1, 1, 1, 4)
    assert sam.percentage == 50
    assert by_student[ada.user_id].percentage == 13


def test_course_stats_student_without_records_has_zero_percentage(container, teacher, student, course, session):
    stats = container.attendance_service.get_course_attendance_stats(teacher, course.course_id)

    row = stats.students[0]
    assert row.total == 0
    assert row.percentage == 0


def test_course_stats_require_course_owner(container, other_teacher, course):
    with pytest.raises(AuthorizationError):
        container.attendance_service.get_course_attendance_stats(other_teacher, course.course_id)


def test_session_attendance_visible_to_enrolled_student_only(container, teacher, student, outsider, session):
    container.attendance_service.mark_attendance(teacher, session.session_id, student.user_id, AttendanceStatus.PRESENT)

    items = container.attendance_service.get_session_attendance(student, session.session_id)

    assert len(items) == 1
    assert items[0].student.name == "Sam Student"
    with pytest.raises(AuthorizationError):
        container.attendance_service.get_session_attendance(outsider, session.session_id)


def test_student_course_attendance_rules(container, teacher, student, course, session):
    ada = _second_student(container, course)
    container.attendance_service.mark_attendance(teacher, session.session_id, student.user_id, AttendanceStatus.PRESENT)

    own = container.attendance_service.get_student_course_attendance(student, student.user_id, course.course_id)
    as_teacher = container.attendance_service.get_student_course_attendance(teacher, student.user_id, course.course_id)

    assert [i.session.title for i in own] == ["Week 1"]
    assert len(as_teacher) == 1
    with pytest.raises(AuthorizationError):
        container.attendance_service.get_student_course_attendance(ada, student.user_id, course.course_id)


def test_student_course_attendance_requires_enrollment(container, teacher, outsider, course):
    with pytest.raises(InvalidStateError):
        container.attendance_service.get_student_course_attendance(teacher, outsider.user_id, course.course_id)


def test_update_recomputes_duration_and_keeps_negative_spans(container, teacher, student, session, fixed_now):
    svc = container.attendance_service
    record = svc.mark_attendance(teacher, session.session_id, student.user_id, AttendanceStatus.PRESENT, now=fixed_now)

    closed = svc.update_attendance(teacher, record.attendance_id, leave_time=fixed_now + timedelta(minutes=45, seconds=30))
    backwards = svc.update_attendance(teacher, record.attendance_id, leave_time=fixed_now - timedelta(minutes=10))

    assert closed.duration == 46
    assert backwards.duration == -10


def test_update_can_clear_notes(container, teacher, student, session):
    svc = container.attendance_service
    record = svc.mark_attendance(teacher, session.session_id, student.user_id, AttendanceStatus.EXCUSED, "doctor")

    kept = svc.update_attendance(teacher, record.attendance_id, status=AttendanceStatus.ABSENT)
    cleared = svc.update_attendance(teacher, record.attendance_id, notes="")

    assert kept.notes == "doctor"
    assert kept.status == AttendanceStatus.ABSENT
    assert cleared.notes == ""


def test_update_unknown_record(container, teacher):
    with pytest.raises(NotFoundError):
        container.attendance_service.update_attendance(teacher, 404, status=AttendanceStatus.PRESENT)
