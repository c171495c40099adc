from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, BulkMarkRow, BulkWriteResult


class AttendanceRepository(Protocol):
    """Storage for attendance records, unique per (session_id, student_id)."""

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_session_student(self, session_id: int, student_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create(
        self,
        *,
        session_id: int,
        student_id: int,
        status: AttendanceStatus,
        notes: str,
        join_time: Optional[datetime],
        join_count: int = 0,
    ) -> int:
        """Insert a new record. Raises DuplicateKeyError when the pair already exists."""
        raise NotImplementedError

    def update(self, record: AttendanceRecord) -> bool:
        """Overwrite status, notes, join_time, leave_time and duration."""
        raise NotImplementedError

    def bulk_upsert(self, session_id: int, rows: Sequence[BulkMarkRow]) -> BulkWriteResult:
        """Upsert every row by (session_id, student_id) in a single transaction."""
        raise NotImplementedError

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_student(self, student_id: int, session_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_open(self, session_id: int, student_id: Optional[int] = None) -> Sequence[AttendanceRecord]:
        """Records with leave_time unset, most recent join first."""
        raise NotImplementedError

    def count_by_status(
        self, session_ids: Sequence[int], student_ids: Sequence[int]
    ) -> dict[tuple[int, AttendanceStatus], int]:
        """Counts keyed by (student_id, status)."""
        raise NotImplementedError

    def delete_for_session(self, session_id: int) -> int:
        raise NotImplementedError

    def delete_for_sessions(self, session_ids: Sequence[int]) -> int:
        raise NotImplementedError
