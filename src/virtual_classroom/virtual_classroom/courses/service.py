from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..assignments.repository import AssignmentRepository, SubmissionRepository
from ..attendance.repository import AttendanceRepository
from ..auth.policy import Capability, course_capability, require_owner
from ..common.datetime_utils import add_months, now_utc
from ..common.validators import FieldErrors
from ..core.constants import COURSE_TITLE_MAX_LENGTH, COURSE_TITLE_MIN_LENGTH, DEFAULT_COURSE_MONTHS
from ..core.enums import EnrollmentStatus, Role
from ..core.exceptions import InvalidStateError, NotFoundError, ValidationError
from ..sessions.repository import SessionRepository
from ..users.model import User, UserSummary
from ..users.repository import UserRepository
from .model import Course, CourseView, Enrollment
from .repository import CourseRepository, EnrollmentRepository

logger = logging.getLogger(__name__)


def is_actively_enrolled(enrollments: EnrollmentRepository, *, student_id: int, course_id: int) -> bool:
    enrollment = enrollments.get(student_id=student_id, course_id=course_id)
    return enrollment is not None and enrollment.status == EnrollmentStatus.ACTIVE


def get_course_or_404(courses: CourseRepository, course_id: int) -> Course:
    course = courses.get_by_id(course_id)
    if not course:
        raise NotFoundError("Course not found")
    return course


class CourseService:
    """Use cases: course catalogue, ownership, and enrollment state."""

    def __init__(
        self,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        users: UserRepository,
        sessions: SessionRepository,
        attendance: AttendanceRepository,
        assignments: AssignmentRepository,
        submissions: SubmissionRepository,
    ):
        self._courses = courses
        self._enrollments = enrollments
        self._users = users
        self._sessions = sessions
        self._attendance = attendance
        self._assignments = assignments
        self._submissions = submissions

    # --- catalogue ---

    def create_course(
        self,
        caller: User,
        payload: dict,
        *,
        cover_image: Optional[str] = None,
        now: datetime | None = None,
    ) -> Course:
        now = now or now_utc()
        fields = FieldErrors(payload)
        title = fields.string(
            "title",
            required=True,
            label="Course title",
            min_len=COURSE_TITLE_MIN_LENGTH,
            max_len=COURSE_TITLE_MAX_LENGTH,
        )
        description = fields.string("description", label="Description") or ""
        subject = fields.string("subject", label="Subject") or ""
        start_date = fields.timestamp("startDate", label="Start date")
        end_date = fields.timestamp("endDate", label="End date")
        fields.raise_if_any()

        start_date = start_date or now
        end_date = end_date or add_months(start_date, DEFAULT_COURSE_MONTHS)

        course_id = self._courses.create(
            title=title,
            description=description,
            teacher_id=caller.user_id,
            subject=subject,
            cover_image=cover_image or "",
            start_date=start_date,
            end_date=end_date,
        )
        logger.info("Course %s created by teacher %s", course_id, caller.user_id)
        return get_course_or_404(self._courses, course_id)

    def list_courses(
        self,
        *,
        teacher_id: Optional[int] = None,
        subject: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[CourseView]:
        courses = self._courses.search(teacher_id=teacher_id, subject=subject, text=search)
        return self._with_teachers(courses)

    def list_teacher_courses(self, caller: User) -> Sequence[Course]:
        return self._courses.search(teacher_id=caller.user_id)

    def list_enrolled_courses(self, caller: User) -> list[CourseView]:
        course_ids = [e.course_id for e in self._enrollments.list_for_student(caller.user_id)]
        return self._with_teachers(self._courses.list_by_ids(course_ids))

    def get_course(self, caller: User, course_id: int) -> CourseView:
        course = get_course_or_404(self._courses, course_id)
        enrolled = caller.role == Role.STUDENT and is_actively_enrolled(
            self._enrollments, student_id=caller.user_id, course_id=course.course_id
        )
        capability = course_capability(caller, course, enrolled=enrolled)
        teachers = self._users.list_summaries([course.teacher_id])
        return CourseView(
            course=course,
            teacher=teachers[0] if teachers else None,
            enrollment_count=len(self._enrollments.list_for_course(course.course_id)),
            is_enrolled=capability == Capability.MEMBER,
            is_teacher=capability == Capability.OWNER,
        )

    def update_course(self, caller: User, course_id: int, payload: dict, *, cover_image: Optional[str] = None) -> Course:
        course = get_course_or_404(self._courses, course_id)
        require_owner(caller, course, "Not authorized to update this course")

        fields = FieldErrors(payload)
        title = fields.string(
            "title",
            label="Course title",
            min_len=COURSE_TITLE_MIN_LENGTH,
            max_len=COURSE_TITLE_MAX_LENGTH,
        )
        description = fields.string("description", label="Description")
        subject = fields.string("subject", label="Subject")
        start_date = fields.timestamp("startDate", label="Start date")
        end_date = fields.timestamp("endDate", label="End date")
        fields.raise_if_any()

        if title == "":
            raise ValidationError("Course title is required")

        updated = replace(
            course,
            title=title if title is not None else course.title,
            description=description if description is not None else course.description,
            subject=subject if subject is not None else course.subject,
            cover_image=cover_image or course.cover_image,
            start_date=start_date or course.start_date,
            end_date=end_date or course.end_date,
        )
        self._courses.update(updated)
        return updated

    def delete_course(self, caller: User, course_id: int) -> None:
        course = get_course_or_404(self._courses, course_id)
        require_owner(caller, course, "Not authorized to delete this course")

        session_ids = self._sessions.list_ids_for_course(course.course_id)
        removed_attendance = self._attendance.delete_for_sessions(session_ids)
        self._sessions.delete_for_course(course.course_id)

        assignment_ids = self._assignments.list_ids_for_course(course.course_id)
        self._submissions.delete_for_assignments(assignment_ids)
        self._assignments.delete_for_course(course.course_id)

        self._enrollments.delete_for_course(course.course_id)
        self._courses.delete(course.course_id)
        logger.info(
            "Course %s deleted (%s sessions, %s attendance records, %s assignments)",
            course.course_id,
            len(session_ids),
            removed_attendance,
            len(assignment_ids),
        )

    # --- enrollment (student side) ---

    def enroll(self, caller: User, course_id: int) -> tuple[Enrollment, bool]:
        """Return (enrollment, created). A dropped enrollment is re-activated instead of duplicated."""
        course = get_course_or_404(self._courses, course_id)
        existing = self._enrollments.get(student_id=caller.user_id, course_id=course.course_id)
        if existing:
            if existing.status == EnrollmentStatus.DROPPED:
                self._enrollments.set_status(existing.enrollment_id, EnrollmentStatus.ACTIVE)
                return replace(existing, status=EnrollmentStatus.ACTIVE), False
            raise InvalidStateError("Already enrolled in this course")

        self._enrollments.create(student_id=caller.user_id, course_id=course.course_id)
        return self._enrollments.get(student_id=caller.user_id, course_id=course.course_id), True

    def drop(self, caller: User, course_id: int) -> Enrollment:
        existing = self._enrollments.get(student_id=caller.user_id, course_id=int(course_id))
        if not existing:
            raise NotFoundError("Not enrolled in this course")
        self._enrollments.set_status(existing.enrollment_id, EnrollmentStatus.DROPPED)
        return replace(existing, status=EnrollmentStatus.DROPPED)

    # --- membership (teacher side) ---

    def list_students(self, caller: User, course_id: int) -> Sequence[UserSummary]:
        course = get_course_or_404(self._courses, course_id)
        require_owner(caller, course, "Not authorized to access this information")
        student_ids = [e.student_id for e in self._enrollments.list_for_course(course.course_id)]
        return self._users.list_summaries(student_ids)

    def list_available_students(self, caller: User, course_id: int) -> Sequence[User]:
        course = get_course_or_404(self._courses, course_id)
        require_owner(caller, course, "Not authorized to access this information")
        enrolled = {e.student_id for e in self._enrollments.list_for_course(course.course_id)}
        return [u for u in self._users.list_users(role=Role.STUDENT) if u.user_id not in enrolled]

    def add_student(self, caller: User, course_id: int, student_id: Optional[int]) -> Enrollment:
        course = get_course_or_404(self._courses, course_id)
        require_owner(caller, course, "Not authorized to manage students in this course")
        if student_id is None:
            raise ValidationError("Student ID is required")

        student = self._users.get_by_id(student_id)
        if not student or student.role != Role.STUDENT:
            raise NotFoundError("Student not found")

        existing = self._enrollments.get(student_id=student.user_id, course_id=course.course_id)
        if existing:
            if existing.status == EnrollmentStatus.ACTIVE:
                raise InvalidStateError("Student is already enrolled in this course")
            self._enrollments.set_status(existing.enrollment_id, EnrollmentStatus.ACTIVE)
            return replace(existing, status=EnrollmentStatus.ACTIVE)

        self._enrollments.create(student_id=student.user_id, course_id=course.course_id)
        return self._enrollments.get(student_id=student.user_id, course_id=course.course_id)

    def remove_student(self, caller: User, course_id: int, student_id: int) -> None:
        course = get_course_or_404(self._courses, course_id)
        require_owner(caller, course, "Not authorized to manage students in this course")
        existing = self._enrollments.get(student_id=int(student_id), course_id=course.course_id)
        if not existing or existing.status != EnrollmentStatus.ACTIVE:
            raise NotFoundError("Student is not enrolled in this course")
        self._enrollments.set_status(existing.enrollment_id, EnrollmentStatus.DROPPED)

    def _with_teachers(self, courses: Sequence[Course]) -> list[CourseView]:
        teachers = {s.user_id: s for s in self._users.list_summaries(sorted({c.teacher_id for c in courses}))}
        return [CourseView(course=c, teacher=teachers.get(c.teacher_id)) for c in courses]
