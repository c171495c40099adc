from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..auth.policy import Capability, course_capability, is_self, require_member_or_owner, require_owner
from ..common.datetime_utils import now_utc
from ..common.validators import FieldErrors
from ..core.constants import ASSIGNMENT_TITLE_MAX_LENGTH, DEFAULT_TOTAL_POINTS
from ..core.enums import Role, SubmissionStatus
from ..core.exceptions import AuthorizationError, DuplicateKeyError, InvalidStateError, NotFoundError, ValidationError
from ..courses.model import Course
from ..courses.repository import CourseRepository, EnrollmentRepository
from ..courses.service import get_course_or_404, is_actively_enrolled
from ..users.model import User
from ..users.repository import UserRepository
from .model import Assignment, AssignmentGradeStats, AssignmentView, Submission, SubmissionView
from .repository import AssignmentRepository, SubmissionRepository

logger = logging.getLogger(__name__)


def _get_assignment(assignments: AssignmentRepository, assignment_id: int) -> Assignment:
    assignment = assignments.get_by_id(assignment_id)
    if not assignment:
        raise NotFoundError("Assignment not found")
    return assignment


def resubmission_status(previous: Optional[Submission], *, is_late: bool) -> SubmissionStatus:
    """Status after a (re)submission: graded work becomes resubmitted, otherwise late or submitted."""
    if previous is not None and previous.status == SubmissionStatus.GRADED:
        return SubmissionStatus.RESUBMITTED
    return SubmissionStatus.LATE if is_late else SubmissionStatus.SUBMITTED


class AssignmentService:
    def __init__(
        self,
        assignments: AssignmentRepository,
        submissions: SubmissionRepository,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
    ):
        self._assignments = assignments
        self._submissions = submissions
        self._courses = courses
        self._enrollments = enrollments

    def _enrolled(self, caller: User, course: Course) -> bool:
        return caller.role == Role.STUDENT and is_actively_enrolled(
            self._enrollments, student_id=caller.user_id, course_id=course.course_id
        )

    def create_assignment(self, caller: User, payload: dict, *, attachments: Sequence[str] = ()) -> Assignment:
        fields = FieldErrors(payload)
        course_id = fields.integer("course", required=True, label="Course ID")
        title = fields.string("title", required=True, label="Title", max_len=ASSIGNMENT_TITLE_MAX_LENGTH)
        description = fields.string("description", label="Description") or ""
        due_date = fields.timestamp("dueDate", required=True, label="Due date")
        total_points = fields.number("totalPoints", minimum=0, label="Total points")
        fields.raise_if_any()

        course = get_course_or_404(self._courses, course_id)
        require_owner(caller, course, "Not authorized to create assignments for this course")

        assignment_id = self._assignments.create(
            course_id=course.course_id,
            teacher_id=caller.user_id,
            title=title,
            description=description,
            due_date=due_date,
            total_points=DEFAULT_TOTAL_POINTS if total_points is None else total_points,
            attachments=list(attachments),
        )
        logger.info("Assignment %s created for course %s", assignment_id, course.course_id)
        return self._assignments.get_by_id(assignment_id)

    def list_for_course(self, caller: User, course_id: int) -> list[AssignmentView]:
        course = get_course_or_404(self._courses, course_id)
        if caller.role == Role.STUDENT and not self._enrolled(caller, course):
            raise AuthorizationError("Not enrolled in this course")
        capability = require_member_or_owner(
            caller,
            course,
            enrolled=self._enrolled(caller, course),
            message="Not authorized to access assignments for this course",
        )

        assignments = self._assignments.list_for_courses([course.course_id])
        if capability != Capability.MEMBER:
            return [AssignmentView(assignment=a) for a in assignments]
        return self._with_own_submissions(caller, assignments)

    def list_for_student(self, caller: User) -> list[AssignmentView]:
        course_ids = [e.course_id for e in self._enrollments.list_for_student(caller.user_id)]
        return self._with_own_submissions(caller, self._assignments.list_for_courses(course_ids))

    def list_for_teacher(self, caller: User) -> Sequence[Assignment]:
        return self._assignments.list_by_teacher(caller.user_id)

    def get_assignment(self, caller: User, assignment_id: int) -> AssignmentView:
        assignment = _get_assignment(self._assignments, assignment_id)
        course = get_course_or_404(self._courses, assignment.course_id)
        capability = require_member_or_owner(
            caller, course, enrolled=self._enrolled(caller, course), message="Not authorized to access this assignment"
        )
        submission = None
        if capability == Capability.MEMBER:
            submission = self._submissions.get_for_assignment_student(assignment.assignment_id, caller.user_id)
        return AssignmentView(
            assignment=assignment,
            is_teacher=capability == Capability.OWNER,
            submitted=(submission is not None) if capability == Capability.MEMBER else None,
            submission=submission,
        )

    def update_assignment(
        self, caller: User, assignment_id: int, payload: dict, *, attachments: Sequence[str] = ()
    ) -> Assignment:
        assignment = _get_assignment(self._assignments, assignment_id)
        course = get_course_or_404(self._courses, assignment.course_id)
        require_owner(caller, course, "Not authorized to update this assignment")

        fields = FieldErrors(payload)
        title = fields.string("title", label="Title", max_len=ASSIGNMENT_TITLE_MAX_LENGTH)
        description = fields.string("description", label="Description")
        due_date = fields.timestamp("dueDate", label="Due date")
        total_points = fields.number("totalPoints", minimum=0, label="Total points")
        fields.raise_if_any()

        updated = replace(
            assignment,
            title=title or assignment.title,
            description=description if description is not None else assignment.description,
            due_date=due_date or assignment.due_date,
            total_points=assignment.total_points if total_points is None else total_points,
            attachments=tuple(assignment.attachments) + tuple(attachments),
        )
        self._assignments.update(updated)
        return updated

    def delete_assignment(self, caller: User, assignment_id: int) -> None:
        assignment = _get_assignment(self._assignments, assignment_id)
        course = get_course_or_404(self._courses, assignment.course_id)
        require_owner(caller, course, "Not authorized to delete this assignment")
        removed = self._submissions.delete_for_assignments([assignment.assignment_id])
        self._assignments.delete(assignment.assignment_id)
        logger.info("Assignment %s deleted with %s submissions", assignment.assignment_id, removed)

    def _with_own_submissions(self, caller: User, assignments: Sequence[Assignment]) -> list[AssignmentView]:
        mine = {
            s.assignment_id: s
            for s in self._submissions.list_for_student(caller.user_id, [a.assignment_id for a in assignments])
        }
        return [
            AssignmentView(
                assignment=a,
                submitted=a.assignment_id in mine,
                submission=mine.get(a.assignment_id),
            )
            for a in assignments
        ]


class SubmissionService:
    """Use cases: hand-ins, grading, and per-course grade statistics."""

    def __init__(
        self,
        submissions: SubmissionRepository,
        assignments: AssignmentRepository,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        users: UserRepository,
    ):
        self._submissions = submissions
        self._assignments = assignments
        self._courses = courses
        self._enrollments = enrollments
        self._users = users

    def _assignment_and_course(self, assignment_id: int) -> tuple[Assignment, Course]:
        assignment = _get_assignment(self._assignments, assignment_id)
        return assignment, get_course_or_404(self._courses, assignment.course_id)

    def _get(self, submission_id: int) -> Submission:
        submission = self._submissions.get_by_id(submission_id)
        if not submission:
            raise NotFoundError("Submission not found")
        return submission

    def submit(
        self,
        caller: User,
        assignment_id: int,
        *,
        file_url: Optional[str],
        comment: Optional[str] = None,
        now: datetime | None = None,
    ) -> Submission:
        now = now or now_utc()
        assignment, course = self._assignment_and_course(assignment_id)
        enrolled = is_actively_enrolled(self._enrollments, student_id=caller.user_id, course_id=course.course_id)
        if course_capability(caller, course, enrolled=enrolled) != Capability.MEMBER:
            raise AuthorizationError("Not enrolled in this course")
        if not file_url:
            raise ValidationError("No file uploaded")

        is_late = now > assignment.due_date
        previous = self._submissions.get_for_assignment_student(assignment.assignment_id, caller.user_id)
        if previous is None:
            try:
                submission_id = self._submissions.create(
                    assignment_id=assignment.assignment_id,
                    student_id=caller.user_id,
                    file_url=file_url,
                    comment=comment or "",
                    submitted_at=now,
                    status=resubmission_status(None, is_late=is_late),
                    is_late=is_late,
                )
                return self._submissions.get_by_id(submission_id)
            except DuplicateKeyError:
                previous = self._submissions.get_for_assignment_student(assignment.assignment_id, caller.user_id)
                if previous is None:
                    raise

        updated = replace(
            previous,
            file_url=file_url,
            comment=comment or "",
            submitted_at=now,
            is_late=is_late,
            status=resubmission_status(previous, is_late=is_late),
        )
        self._submissions.update(updated)
        logger.info("Student %s resubmitted assignment %s", caller.user_id, assignment.assignment_id)
        return updated

    def list_for_assignment(self, caller: User, assignment_id: int) -> list[SubmissionView]:
        assignment, course = self._assignment_and_course(assignment_id)
        require_owner(caller, course, "Not authorized to view submissions for this assignment")
        submissions = self._submissions.list_for_assignment(assignment.assignment_id)
        students = {s.user_id: s for s in self._users.list_summaries(sorted({x.student_id for x in submissions}))}
        return [SubmissionView(submission=s, student=students.get(s.student_id)) for s in submissions]

    def grade(
        self,
        caller: User,
        submission_id: int,
        grade: Optional[float],
        feedback: Optional[str] = None,
        *,
        now: datetime | None = None,
    ) -> Submission:
        now = now or now_utc()
        submission = self._get(submission_id)
        assignment, course = self._assignment_and_course(submission.assignment_id)
        require_owner(caller, course, "Not authorized to grade this submission")

        if grade is None or grade < 0 or grade > assignment.total_points:
            raise ValidationError(f"Grade must be between 0 and {assignment.total_points:g}")

        updated = replace(
            submission,
            grade=float(grade),
            feedback=feedback if feedback is not None else submission.feedback,
            status=SubmissionStatus.GRADED,
            graded_by=caller.user_id,
            graded_at=now,
        )
        self._submissions.update(updated)
        return updated

    def get_submission(self, caller: User, submission_id: int) -> SubmissionView:
        submission = self._get(submission_id)
        assignment, course = self._assignment_and_course(submission.assignment_id)
        owner = course_capability(caller, course) == Capability.OWNER
        if not is_self(caller, submission.student_id) and not owner:
            raise AuthorizationError("Not authorized to view this submission")
        students = self._users.list_summaries([submission.student_id])
        return SubmissionView(submission=submission, student=students[0] if students else None, assignment=assignment)

    def delete_submission(self, caller: User, submission_id: int) -> None:
        submission = self._get(submission_id)
        _, course = self._assignment_and_course(submission.assignment_id)
        own = is_self(caller, submission.student_id)
        if not own and course_capability(caller, course) != Capability.OWNER:
            raise AuthorizationError("Not authorized to delete this submission")
        if own and submission.status == SubmissionStatus.GRADED:
            raise InvalidStateError("Cannot delete a graded submission")
        self._submissions.delete(submission.submission_id)

    def list_for_student(self, caller: User, student_id: int) -> list[SubmissionView]:
        if is_self(caller, student_id):
            submissions = self._submissions.list_for_student(student_id)
        else:
            # other callers only see work handed in to courses they teach
            owned = [
                c
                for c in self._courses.search(teacher_id=caller.user_id)
                if course_capability(caller, c) == Capability.OWNER
            ]
            if not owned:
                raise AuthorizationError("Not authorized to view these submissions")
            assignment_ids = [a.assignment_id for a in self._assignments.list_for_courses([c.course_id for c in owned])]
            submissions = self._submissions.list_for_student(student_id, assignment_ids)

        assignments = {
            a.assignment_id: a
            for a in (self._assignments.get_by_id(i) for i in sorted({s.assignment_id for s in submissions}))
            if a is not None
        }
        return [SubmissionView(submission=s, assignment=assignments.get(s.assignment_id)) for s in submissions]

    def course_grade_stats(self, caller: User, course_id: int) -> list[AssignmentGradeStats]:
        course = get_course_or_404(self._courses, course_id)
        require_owner(caller, course, "Not authorized to view stats for this course")

        stats: list[AssignmentGradeStats] = []
        for assignment in self._assignments.list_for_courses([course.course_id]):
            submissions = self._submissions.list_for_assignment(assignment.assignment_id)
            graded = [s for s in submissions if s.status == SubmissionStatus.GRADED]
            grades = [s.grade for s in submissions if s.grade is not None]
            stats.append(
                AssignmentGradeStats(
                    assignment=assignment,
                    total_submissions=len(submissions),
                    graded_submissions=len(graded),
                    pending_submissions=len(submissions) - len(graded),
                    late_submissions=sum(1 for s in submissions if s.is_late),
                    average_grade=round(sum(grades) / len(grades), 2) if grades else 0,
                    highest_grade=max(grades) if grades else 0,
                    lowest_grade=min(grades) if grades else 0,
                )
            )
        return stats
