from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import SubmissionStatus
from ..users.model import UserSummary


@dataclass(frozen=True)
class Assignment:
    assignment_id: int
    course_id: int
    teacher_id: int
    title: str
    description: str
    due_date: datetime
    total_points: float = 100
    attachments: tuple[str, ...] = ()
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Submission:
    """A student's hand-in for one assignment. One row per (assignment, student)."""

    submission_id: int
    assignment_id: int
    student_id: int
    file_url: str
    comment: str
    submitted_at: datetime
    status: SubmissionStatus = SubmissionStatus.SUBMITTED
    is_late: bool = False
    grade: Optional[float] = None
    feedback: str = ""
    graded_by: Optional[int] = None
    graded_at: Optional[datetime] = None


@dataclass(frozen=True)
class AssignmentView:
    assignment: Assignment
    is_teacher: Optional[bool] = None
    # set for student callers only
    submitted: Optional[bool] = None
    submission: Optional[Submission] = None


@dataclass(frozen=True)
class SubmissionView:
    submission: Submission
    student: Optional[UserSummary] = None
    assignment: Optional[Assignment] = None


@dataclass(frozen=True)
class AssignmentGradeStats:
    assignment: Assignment
    total_submissions: int = 0
    graded_submissions: int = 0
    pending_submissions: int = 0
    late_submissions: int = 0
    average_grade: float = 0
    highest_grade: float = 0
    lowest_grade: float = 0
