from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import VideoProvider
from .model import ClassSession


class SessionRepository(Protocol):
    def get_by_id(self, session_id: int) -> Optional[ClassSession]:
        raise NotImplementedError

    def create(
        self,
        *,
        course_id: int,
        title: str,
        description: str,
        start_time: datetime,
        end_time: datetime,
        video_link: str,
        host_video_link: str,
        meeting_id: str,
        video_provider: VideoProvider,
    ) -> int:
        raise NotImplementedError

    def save(self, session: ClassSession) -> bool:
        """Persist every mutable column of `session`."""
        raise NotImplementedError

    def delete(self, session_id: int) -> bool:
        raise NotImplementedError

    def list_for_courses(self, course_ids: Sequence[int], *, newest_first: bool = False) -> Sequence[ClassSession]:
        raise NotImplementedError

    def list_upcoming(self, course_ids: Sequence[int], *, now: datetime, limit: int) -> Sequence[ClassSession]:
        """start_time > now and not completed, soonest first."""
        raise NotImplementedError

    def list_past(self, course_ids: Sequence[int], *, now: datetime, limit: int) -> Sequence[ClassSession]:
        """end_time < now, most recent start first."""
        raise NotImplementedError

    def list_ids_for_course(self, course_id: int) -> list[int]:
        raise NotImplementedError

    def delete_for_course(self, course_id: int) -> int:
        raise NotImplementedError
