from __future__ import annotations

from datetime import datetime

import pytest

from src.virtual_classroom.virtual_classroom.core.enums import AttendanceStatus, EnrollmentStatus, Role
from src.virtual_classroom.virtual_classroom.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


def test_create_course_defaults_end_date_three_months_later(container, teacher):
    course = container.course_service.create_course(
        teacher, {"title": "Physics", "startDate": "2026-11-30T08:00:00Z"}
    )

    assert course.teacher_id == teacher.user_id
    assert course.start_date == datetime(2026, 11, 30, 8, 0)
    # February has no 30th
    assert course.end_date == datetime(2027, 2, 28, 8, 0)


def test_create_course_validates_title(container, teacher):
    with pytest.raises(ValidationError) as exc:
        container.course_service.create_course(teacher, {"title": "ab"})

    assert exc.value.errors[0]["field"] == "title"


def test_list_courses_filters_by_subject_and_text(container, teacher):
    container.courses_repo.add(teacher, "Intro to Chemistry", subject="Science")
    container.courses_repo.add(teacher, "Geometry", subject="Math")

    science = container.course_service.list_courses(subject="sci")
    geometry = container.course_service.list_courses(search="GEOM")

    assert [v.course.title for v in science] == ["Intro to Chemistry"]
    assert [v.course.title for v in geometry] == ["Geometry"]
    assert geometry[0].teacher.name == "Tess Teacher"


def test_get_course_flags_for_each_caller(container, teacher, student, outsider, course):
    as_teacher = container.course_service.get_course(teacher, course.course_id)
    as_student = container.course_service.get_course(student, course.course_id)
    as_outsider = container.course_service.get_course(outsider, course.course_id)

    assert (as_teacher.is_teacher, as_teacher.is_enrolled) == (True, False)
    assert (as_student.is_teacher, as_student.is_enrolled) == (False, True)
    assert (as_outsider.is_teacher, as_outsider.is_enrolled) == (False, False)
    assert as_teacher.enrollment_count == 1


def test_update_course_requires_owner(container, other_teacher, course):
    with pytest.raises(AuthorizationError):
        container.course_service.update_course(other_teacher, course.course_id, {"title": "Hijacked"})


def test_update_course_keeps_unspecified_fields(container, teacher, course):
    updated = container.course_service.update_course(teacher, course.course_id, {"description": "Linear equations"})

    assert updated.title == course.title
    assert updated.description == "Linear equations"


def test_enroll_then_duplicate_then_reenroll_after_drop(container, teacher, outsider, course):
    svc = container.course_service

    enrollment, created = svc.enroll(outsider, course.course_id)
    with pytest.raises(InvalidStateError):
        svc.enroll(outsider, course.course_id)
    svc.drop(outsider, course.course_id)
    again, created_again = svc.enroll(outsider, course.course_id)

    assert created is True
    assert created_again is False
    assert again.enrollment_id == enrollment.enrollment_id
    assert again.status == EnrollmentStatus.ACTIVE


def test_drop_without_enrollment(container, outsider, course):
    with pytest.raises(NotFoundError):
        container.course_service.drop(outsider, course.course_id)


def test_teacher_adds_and_removes_students(container, teacher, student, outsider, course):
    svc = container.course_service

    available = svc.list_available_students(teacher, course.course_id)
    svc.add_student(teacher, course.course_id, outsider.user_id)
    roster = svc.list_students(teacher, course.course_id)
    svc.remove_student(teacher, course.course_id, student.user_id)

    assert [u.user_id for u in available] == [outsider.user_id]
    assert sorted(s.user_id for s in roster) == sorted([student.user_id, outsider.user_id])
    assert [s.user_id for s in svc.list_students(teacher, course.course_id)] == [outsider.user_id]


def test_add_student_rejects_teachers_and_existing_members(container, teacher, other_teacher, student, course):
    svc = container.course_service

    with pytest.raises(NotFoundError):
        svc.add_student(teacher, course.course_id, other_teacher.user_id)
    with pytest.raises(InvalidStateError):
        svc.add_student(teacher, course.course_id, student.user_id)


def test_delete_course_removes_dependent_rows(container, teacher, student, course, session):
    container.attendance_service.mark_attendance(teacher, session.session_id, student.user_id, AttendanceStatus.PRESENT)
    assignment = container.assignments_repo.add(course, due=datetime(2026, 4, 1))
    container.submission_service.submit(student, assignment.assignment_id, file_url="/uploads/submissions/a.pdf")

    container.course_service.delete_course(teacher, course.course_id)

    assert container.courses_repo.get_by_id(course.course_id) is None
    assert container.sessions_repo.get_by_id(session.session_id) is None
    assert container.attendance_repo.list_for_session(session.session_id) == []
    assert container.assignments_repo.get_by_id(assignment.assignment_id) is None
    assert container.submissions_repo.list_for_student(student.user_id) == []
    assert container.enrollments_repo.get(student_id=student.user_id, course_id=course.course_id) is None


def test_admin_has_no_course_rights(container, course):
    admin = container.users_repo.add("Ada Admin", "admin@example.com", Role.ADMIN)

    with pytest.raises(AuthorizationError):
        container.course_service.delete_course(admin, course.course_id)
