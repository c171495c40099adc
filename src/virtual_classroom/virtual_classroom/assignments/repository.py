from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SubmissionStatus
from .model import Assignment, Submission


class AssignmentRepository(Protocol):
    def get_by_id(self, assignment_id: int) -> Optional[Assignment]:
        raise NotImplementedError

    def create(
        self,
        *,
        course_id: int,
        teacher_id: int,
        title: str,
        description: str,
        due_date: datetime,
        total_points: float,
        attachments: Sequence[str],
    ) -> int:
        raise NotImplementedError

    def update(self, assignment: Assignment) -> bool:
        raise NotImplementedError

    def delete(self, assignment_id: int) -> bool:
        raise NotImplementedError

    def list_for_courses(self, course_ids: Sequence[int]) -> Sequence[Assignment]:
        """Earliest due date first."""
        raise NotImplementedError

    def list_by_teacher(self, teacher_id: int) -> Sequence[Assignment]:
        raise NotImplementedError

    def list_ids_for_course(self, course_id: int) -> list[int]:
        raise NotImplementedError

    def delete_for_course(self, course_id: int) -> int:
        raise NotImplementedError


class SubmissionRepository(Protocol):
    def get_by_id(self, submission_id: int) -> Optional[Submission]:
        raise NotImplementedError

    def get_for_assignment_student(self, assignment_id: int, student_id: int) -> Optional[Submission]:
        raise NotImplementedError

    def create(
        self,
        *,
        assignment_id: int,
        student_id: int,
        file_url: str,
        comment: str,
        submitted_at: datetime,
        status: SubmissionStatus,
        is_late: bool,
    ) -> int:
        """Raises DuplicateKeyError when the student already has a submission."""
        raise NotImplementedError

    def update(self, submission: Submission) -> bool:
        raise NotImplementedError

    def delete(self, submission_id: int) -> bool:
        raise NotImplementedError

    def list_for_assignment(self, assignment_id: int) -> Sequence[Submission]:
        raise NotImplementedError

    def list_for_student(self, student_id: int, assignment_ids: Optional[Sequence[int]] = None) -> Sequence[Submission]:
        """Newest submission first; `assignment_ids` narrows the result when given."""
        raise NotImplementedError

    def delete_for_assignments(self, assignment_ids: Sequence[int]) -> int:
        raise NotImplementedError
