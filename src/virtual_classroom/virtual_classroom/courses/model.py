from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import EnrollmentStatus
from ..users.model import UserSummary


@dataclass(frozen=True)
class Course:
    """Domain entity: a course owned by one teacher."""

    course_id: int
    title: str
    description: str
    teacher_id: int
    subject: str
    cover_image: str
    start_date: datetime
    end_date: datetime
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Enrollment:
    """A student's membership in a course. One row per (student, course)."""

    enrollment_id: int
    course_id: int
    student_id: int
    status: EnrollmentStatus
    grade: Optional[int] = None
    enrolled_at: Optional[datetime] = None


@dataclass(frozen=True)
class CourseView:
    """Course plus the fields a caller sees when browsing or opening it."""

    course: Course
    teacher: Optional[UserSummary] = None
    enrollment_count: Optional[int] = None
    is_enrolled: Optional[bool] = None
    is_teacher: Optional[bool] = None
