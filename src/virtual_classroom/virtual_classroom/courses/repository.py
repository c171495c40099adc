from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import EnrollmentStatus
from .model import Course, Enrollment


class CourseRepository(Protocol):
    def get_by_id(self, course_id: int) -> Optional[Course]:
        raise NotImplementedError

    def create(
        self,
        *,
        title: str,
        description: str,
        teacher_id: int,
        subject: str,
        cover_image: str,
        start_date: datetime,
        end_date: datetime,
    ) -> int:
        raise NotImplementedError

    def update(self, course: Course) -> bool:
        raise NotImplementedError

    def delete(self, course_id: int) -> bool:
        raise NotImplementedError

    def search(
        self,
        *,
        teacher_id: Optional[int] = None,
        subject: Optional[str] = None,
        text: Optional[str] = None,
    ) -> Sequence[Course]:
        """Newest first. `subject` and `text` are case-insensitive contains filters."""
        raise NotImplementedError

    def list_by_ids(self, course_ids: Sequence[int]) -> Sequence[Course]:
        raise NotImplementedError


class EnrollmentRepository(Protocol):
    def get(self, *, student_id: int, course_id: int) -> Optional[Enrollment]:
        raise NotImplementedError

    def create(self, *, student_id: int, course_id: int, status: EnrollmentStatus = EnrollmentStatus.ACTIVE) -> int:
        raise NotImplementedError

    def set_status(self, enrollment_id: int, status: EnrollmentStatus) -> bool:
        raise NotImplementedError

    def list_for_course(self, course_id: int, *, status: EnrollmentStatus = EnrollmentStatus.ACTIVE) -> Sequence[Enrollment]:
        raise NotImplementedError

    def list_for_student(self, student_id: int, *, status: EnrollmentStatus = EnrollmentStatus.ACTIVE) -> Sequence[Enrollment]:
        raise NotImplementedError

    def delete_for_course(self, course_id: int) -> int:
        raise NotImplementedError
