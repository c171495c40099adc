from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import VideoProvider


@dataclass(frozen=True)
class ClassSession:
    """Domain entity: one scheduled live class of a course."""

    session_id: int
    course_id: int
    title: str
    description: str
    start_time: datetime
    end_time: datetime
    video_link: str = ""
    host_video_link: str = ""
    meeting_id: str = ""
    recording_url: str = ""
    video_provider: VideoProvider = VideoProvider.JITSI
    is_active: bool = False
    activated_at: Optional[datetime] = None
    is_completed: bool = False
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SessionView:
    session: ClassSession
    course_title: Optional[str] = None
    is_teacher: Optional[bool] = None
    # link shown to this caller; the host link for the owning teacher
    video_link: Optional[str] = None


@dataclass(frozen=True)
class JoinInfo:
    session_id: int
    title: str
    course_title: str
    video_link: str
    video_provider: VideoProvider
    meeting_id: str
    message: Optional[str] = None


@dataclass(frozen=True)
class SessionStatus:
    is_active: bool
    is_completed: bool
    activated_at: Optional[datetime]
    timing_status: str
    can_join: bool
