from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..attendance.tracker import AttendanceTracker
from ..auth.policy import Capability, course_capability, require_member_or_owner, require_owner
from ..common.datetime_utils import now_utc
from ..common.validators import FieldErrors
from ..core.constants import PAST_SESSIONS_LIMIT, UPCOMING_SESSIONS_LIMIT
from ..core.enums import Role, VideoProvider
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..courses.model import Course
from ..courses.repository import CourseRepository, EnrollmentRepository
from ..courses.service import get_course_or_404, is_actively_enrolled
from ..users.model import User
from .model import ClassSession, JoinInfo, SessionStatus, SessionView
from .repository import SessionRepository
from .video import JitsiLinkProvider

logger = logging.getLogger(__name__)

_PROVIDERS = [p.value for p in VideoProvider]


class SessionService:
    """Use cases: scheduling live sessions and running them (start, join, leave, end)."""

    def __init__(
        self,
        sessions: SessionRepository,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        attendance: AttendanceRepository,
        tracker: AttendanceTracker,
        video: JitsiLinkProvider,
    ):
        self._sessions = sessions
        self._courses = courses
        self._enrollments = enrollments
        self._attendance = attendance
        self._tracker = tracker
        self._video = video

    def _get(self, session_id: int) -> tuple[ClassSession, Course]:
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session not found")
        return session, get_course_or_404(self._courses, session.course_id)

    def _enrolled(self, caller: User, course: Course) -> bool:
        return caller.role == Role.STUDENT and is_actively_enrolled(
            self._enrollments, student_id=caller.user_id, course_id=course.course_id
        )

    def _visible_course_ids(self, caller: User) -> list[int]:
        if caller.role == Role.TEACHER:
            return [c.course_id for c in self._courses.search(teacher_id=caller.user_id)]
        return [e.course_id for e in self._enrollments.list_for_student(caller.user_id)]

    def _with_course_titles(self, sessions: Sequence[ClassSession]) -> list[SessionView]:
        titles = {c.course_id: c.title for c in self._courses.list_by_ids(sorted({s.course_id for s in sessions}))}
        return [SessionView(session=s, course_title=titles.get(s.course_id)) for s in sessions]

    # --- scheduling ---

    def create_session(self, caller: User, payload: dict) -> ClassSession:
        fields = FieldErrors(payload)
        course_id = fields.integer("course", required=True, label="Course ID")
        title = fields.string("title", required=True, label="Session title")
        description = fields.string("description", label="Description") or ""
        start_time = fields.timestamp("startTime", required=True, label="Start time")
        end_time = fields.timestamp("endTime", required=True, label="End time")
        provider = fields.choice("videoProvider", _PROVIDERS, label="videoProvider") or VideoProvider.JITSI.value
        fields.raise_if_any()

        if end_time <= start_time:
            raise ValidationError(
                "End time must be after start time",
                errors=[{"field": "endTime", "message": "End time must be after start time"}],
            )

        course = get_course_or_404(self._courses, course_id)
        require_owner(caller, course, "Not authorized to create sessions for this course")

        video_provider = VideoProvider(provider)
        link = host_link = meeting_id = ""
        if video_provider in (VideoProvider.JITSI, VideoProvider.OTHER):
            room = self._video.create_room(caller, course.title)
            link, host_link, meeting_id = room.video_link, room.host_video_link, room.room_name

        session_id = self._sessions.create(
            course_id=course.course_id,
            title=title,
            description=description,
            start_time=start_time,
            end_time=end_time,
            video_link=link,
            host_video_link=host_link,
            meeting_id=meeting_id,
            video_provider=video_provider,
        )
        logger.info("Session %s scheduled for course %s", session_id, course.course_id)
        return self._sessions.get_by_id(session_id)

    def list_sessions(self, caller: User) -> list[SessionView]:
        return self._with_course_titles(self._sessions.list_for_courses(self._visible_course_ids(caller), newest_first=True))

    def list_upcoming(self, caller: User, *, now: datetime | None = None) -> list[SessionView]:
        now = now or now_utc()
        sessions = self._sessions.list_upcoming(self._visible_course_ids(caller), now=now, limit=UPCOMING_SESSIONS_LIMIT)
        return self._with_course_titles(sessions)

    def list_past(self, caller: User, *, now: datetime | None = None) -> list[SessionView]:
        now = now or now_utc()
        sessions = self._sessions.list_past(self._visible_course_ids(caller), now=now, limit=PAST_SESSIONS_LIMIT)
        return self._with_course_titles(sessions)

    def list_for_course(self, caller: User, course_id: int) -> Sequence[ClassSession]:
        course = get_course_or_404(self._courses, course_id)
        if caller.role == Role.STUDENT and not self._enrolled(caller, course):
            raise AuthorizationError("Not enrolled in this course")
        require_member_or_owner(
            caller,
            course,
            enrolled=self._enrolled(caller, course),
            message="Not authorized to access sessions for this course",
        )
        return self._sessions.list_for_courses([course.course_id])

    def get_session(self, caller: User, session_id: int) -> SessionView:
        session, course = self._get(session_id)
        capability = require_member_or_owner(
            caller, course, enrolled=self._enrolled(caller, course), message="Not authorized to access this session"
        )
        is_teacher = capability == Capability.OWNER
        link = session.host_video_link if is_teacher and session.host_video_link else session.video_link
        return SessionView(session=session, course_title=course.title, is_teacher=is_teacher, video_link=link)

    def update_session(self, caller: User, session_id: int, payload: dict) -> ClassSession:
        session, course = self._get(session_id)
        require_owner(caller, course, "Not authorized to update this session")

        fields = FieldErrors(payload)
        title = fields.string("title", label="Session title")
        description = fields.string("description", label="Description")
        start_time = fields.timestamp("startTime", label="Start time")
        end_time = fields.timestamp("endTime", label="End time")
        recording_url = fields.string("recordingUrl", label="Recording URL")
        fields.raise_if_any()

        start = start_time or session.start_time
        end = end_time or session.end_time
        if start >= end:
            end = start + timedelta(hours=1)
            logger.info("Adjusted end time of session %s to one hour after start", session.session_id)

        updated = replace(
            session,
            title=title or session.title,
            description=description if description is not None else session.description,
            start_time=start,
            end_time=end,
            recording_url=recording_url if recording_url is not None else session.recording_url,
        )

        if title and title != session.title:
            room = self._video.create_room(caller, course.title)
            updated = replace(
                updated,
                video_link=room.video_link,
                host_video_link=room.host_video_link,
                meeting_id=room.room_name,
                video_provider=VideoProvider.JITSI,
            )
            logger.info("New video room %s for renamed session %s", room.room_name, session.session_id)

        self._sessions.save(updated)
        return updated

    def delete_session(self, caller: User, session_id: int) -> None:
        session, course = self._get(session_id)
        require_owner(caller, course, "Not authorized to delete this session")
        self._sessions.delete(session.session_id)
        removed = self._attendance.delete_for_session(session.session_id)
        logger.info("Session %s deleted with %s attendance records", session.session_id, removed)

    def complete_session(self, caller: User, session_id: int, *, recording_url: Optional[str] = None) -> ClassSession:
        session, course = self._get(session_id)
        require_owner(caller, course, "Not authorized to update this session")
        updated = replace(session, is_completed=True, recording_url=recording_url or session.recording_url)
        self._sessions.save(updated)
        return updated

    # --- live lifecycle ---

    def start_session(self, caller: User, session_id: int, *, now: datetime | None = None) -> JoinInfo:
        now = now or now_utc()
        session, course = self._get(session_id)
        require_owner(caller, course, "Not authorized to start this session")

        if session.is_active:
            return self._join_info(
                session,
                course,
                session.host_video_link or session.video_link,
                message="Session is already active",
            )

        updated = replace(session, is_active=True, activated_at=now)
        if session.video_provider in (VideoProvider.JITSI, VideoProvider.OTHER) and (
            not session.video_link or not session.meeting_id
        ):
            room = self._video.create_room(caller, course.title)
            updated = replace(
                updated,
                video_link=room.video_link,
                host_video_link=room.host_video_link,
                meeting_id=room.room_name,
            )
        self._sessions.save(updated)
        logger.info("Session %s started by teacher %s", session.session_id, caller.user_id)

        link = updated.host_video_link or updated.video_link
        if not link:
            room = self._video.fallback_room(updated.session_id)
            updated = replace(updated, meeting_id=room)
            return self._join_info(updated, course, self._video.link(room), message="Session started with fallback link")
        return self._join_info(updated, course, link, message="Session started successfully")

    def join_session(self, caller: User, session_id: int, *, now: datetime | None = None) -> JoinInfo:
        session, course = self._get(session_id)
        capability = course_capability(caller, course, enrolled=self._enrolled(caller, course))
        if caller.role == Role.STUDENT and capability != Capability.MEMBER:
            raise AuthorizationError("You are not enrolled in this course")

        if capability == Capability.MEMBER:
            self._tracker.record_attendance_on_join(session.session_id, caller.user_id, now=now)

        if capability == Capability.OWNER:
            link = session.host_video_link or session.video_link
        else:
            link = session.video_link
        if not link:
            room = session.meeting_id or self._video.fallback_room(session.session_id)
            link = self._video.link(room)
            logger.info("Fallback video link for session %s: %s", session.session_id, link)
        return self._join_info(session, course, link)

    def leave_session(self, caller: User, session_id: int, *, now: datetime | None = None) -> Optional[AttendanceRecord]:
        session, course = self._get(session_id)
        if not self._enrolled(caller, course):
            raise AuthorizationError("You are not enrolled in this course")
        return self._tracker.update_attendance_on_leave(session.session_id, caller.user_id, now=now)

    def end_session(
        self,
        caller: User,
        session_id: int,
        *,
        recording_url: Optional[str] = None,
        is_completed: bool = False,
        now: datetime | None = None,
    ) -> ClassSession:
        session, course = self._get(session_id)
        require_owner(caller, course, "Not authorized to end this session")

        updated = replace(
            session,
            is_active=False,
            recording_url=recording_url or session.recording_url,
            is_completed=session.is_completed or bool(is_completed),
        )
        closed = self._tracker.close_all_attendance_records(session.session_id, now=now)
        self._sessions.save(updated)
        logger.info("Session %s ended, %s attendance records closed", session.session_id, closed)
        return updated

    def get_status(self, session_id: int, *, now: datetime | None = None) -> SessionStatus:
        now = now or now_utc()
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session not found")

        timing = "upcoming"
        if now > session.end_time:
            timing = "ended"
        elif now >= session.start_time:
            timing = "ongoing"

        return SessionStatus(
            is_active=session.is_active,
            is_completed=session.is_completed,
            activated_at=session.activated_at,
            timing_status=timing,
            can_join=session.is_active and not session.is_completed,
        )

    @staticmethod
    def _join_info(session: ClassSession, course: Course, link: str, *, message: Optional[str] = None) -> JoinInfo:
        return JoinInfo(
            session_id=session.session_id,
            title=session.title,
            course_title=course.title,
            video_link=link,
            video_provider=session.video_provider,
            meeting_id=session.meeting_id,
            message=message,
        )
