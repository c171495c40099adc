from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.virtual_classroom.virtual_classroom.assignments.model import Submission
from src.virtual_classroom.virtual_classroom.assignments.service import resubmission_status
from src.virtual_classroom.virtual_classroom.core.enums import Role, SubmissionStatus
from src.virtual_classroom.virtual_classroom.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    ValidationError,
)

DUE = datetime(2026, 3, 20, 23, 59)


@pytest.fixture
def assignment(container, course):
    return container.assignments_repo.add(course, due=DUE, total_points=50)


def test_resubmission_status_table():
    graded = Submission(
        submission_id=1,
        assignment_id=1,
        student_id=1,
        file_url="x",
        comment="",
        submitted_at=DUE,
        status=SubmissionStatus.GRADED,
    )

    assert resubmission_status(None, is_late=False) == SubmissionStatus.SUBMITTED
    assert resubmission_status(None, is_late=True) == SubmissionStatus.LATE
    assert resubmission_status(graded, is_late=True) == SubmissionStatus.RESUBMITTED


def test_create_assignment_defaults_total_points(container, teacher, course):
    created = container.assignment_service.create_assignment(
        teacher,
        {"course": course.course_id, "title": "Essay", "dueDate": "2026-04-01T12:00:00Z"},
        attachments=["/uploads/assignments/brief.pdf"],
    )

    assert created.total_points == 100
    assert created.attachments == ("/uploads/assignments/brief.pdf",)


def test_update_appends_attachments(container, teacher, assignment):
    svc = container.assignment_service
    svc.update_assignment(teacher, assignment.assignment_id, {}, attachments=["/uploads/assignments/a.pdf"])

    updated = svc.update_assignment(teacher, assignment.assignment_id, {"title": "Renamed"}, attachments=["/uploads/assignments/b.pdf"])

    assert updated.title == "Renamed"
    assert updated.attachments == ("/uploads/assignments/a.pdf", "/uploads/assignments/b.pdf")


def test_student_views_include_own_submission(container, student, course, assignment):
    container.submission_service.submit(student, assignment.assignment_id, file_url="/f.pdf", now=DUE - timedelta(days=1))

    views = container.assignment_service.list_for_course(student, course.course_id)

    assert views[0].submitted is True
    assert views[0].submission.file_url == "/f.pdf"


def test_outsider_cannot_list_course_assignments(container, outsider, course, assignment):
    with pytest.raises(AuthorizationError):
        container.assignment_service.list_for_course(outsider, course.course_id)


def test_submit_on_time_then_late_resubmission(container, student, assignment):
    svc = container.submission_service

    first = svc.submit(student, assignment.assignment_id, file_url="/v1.pdf", now=DUE - timedelta(hours=1))
    second = svc.submit(student, assignment.assignment_id, file_url="/v2.pdf", now=DUE + timedelta(hours=1))

    assert first.status == SubmissionStatus.SUBMITTED
    assert second.submission_id == first.submission_id
    assert second.status == SubmissionStatus.LATE
    assert second.is_late is True
    assert second.file_url == "/v2.pdf"


def test_submit_after_grading_is_resubmitted(container, teacher, student, assignment):
    svc = container.submission_service
    sub = svc.submit(student, assignment.assignment_id, file_url="/v1.pdf", now=DUE - timedelta(days=1))
    svc.grade(teacher, sub.submission_id, 40, "good")

    again = svc.submit(student, assignment.assignment_id, file_url="/v2.pdf", now=DUE - timedelta(hours=2))

    assert again.status == SubmissionStatus.RESUBMITTED
    assert again.grade == 40


def test_submit_requires_file_and_enrollment(container, student, outsider, assignment):
    with pytest.raises(ValidationError):
        container.submission_service.submit(student, assignment.assignment_id, file_url=None)
    with pytest.raises(AuthorizationError):
        container.submission_service.submit(outsider, assignment.assignment_id, file_url="/f.pdf")


def test_grade_bounds(container, teacher, student, assignment, fixed_now):
    svc = container.submission_service
    sub = svc.submit(student, assignment.assignment_id, file_url="/f.pdf", now=fixed_now)

    with pytest.raises(ValidationError) as exc:
        svc.grade(teacher, sub.submission_id, 51)
    graded = svc.grade(teacher, sub.submission_id, 50, "full marks", now=fixed_now)

    assert exc.value.message == "Grade must be between 0 and 50"
    assert graded.status == SubmissionStatus.GRADED
    assert graded.graded_by == teacher.user_id
    assert graded.graded_at == fixed_now


def test_grade_requires_course_owner(container, other_teacher, student, assignment):
    sub = container.submission_service.submit(student, assignment.assignment_id, file_url="/f.pdf")

    with pytest.raises(AuthorizationError):
        container.submission_service.grade(other_teacher, sub.submission_id, 10)


def test_student_cannot_delete_graded_submission(container, teacher, student, assignment):
    svc = container.submission_service
    sub = svc.submit(student, assignment.assignment_id, file_url="/f.pdf")
    svc.grade(teacher, sub.submission_id, 30)

    with pytest.raises(InvalidStateError):
        svc.delete_submission(student, sub.submission_id)
    svc.delete_submission(teacher, sub.submission_id)

    assert container.submissions_repo.get_by_id(sub.submission_id) is None


def test_submissions_of_student_visible_to_self_and_owner_only(container, teacher, other_teacher, student, assignment):
    container.submission_service.submit(student, assignment.assignment_id, file_url="/f.pdf")

    own = container.submission_service.list_for_student(student, student.user_id)
    owner_view = container.submission_service.list_for_student(teacher, student.user_id)

    assert len(own) == 1
    assert own[0].assignment.title == assignment.title
    assert len(owner_view) == 1
    with pytest.raises(AuthorizationError):
        container.submission_service.list_for_student(other_teacher, student.user_id)


def test_course_grade_stats(container, teacher, student, course, assignment):
    ada = container.users_repo.add("Ada Student", "ada@example.com", Role.STUDENT)
    container.enrollments_repo.add(ada, course)
    svc = container.submission_service
    first = svc.submit(student, assignment.assignment_id, file_url="/a.pdf", now=DUE - timedelta(days=1))
    svc.submit(ada, assignment.assignment_id, file_url="/b.pdf", now=DUE + timedelta(days=1))
    svc.grade(teacher, first.submission_id, 37)

    stats = svc.course_grade_stats(teacher, course.course_id)

    row = stats[0]
    assert (row.total_submissions, row.graded_submissions, row.pending_submissions, row.late_submissions) == (2, 1, 1, 1)
    assert row.average_grade == 37
    assert (row.highest_grade, row.lowest_grade) == (37, 37)
