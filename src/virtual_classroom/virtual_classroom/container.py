from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import redis

from .assignments.mysql_assignment_repository import MySQLAssignmentRepository
from .assignments.mysql_submission_repository import MySQLSubmissionRepository
from .assignments.repository import AssignmentRepository, SubmissionRepository
from .assignments.service import AssignmentService, SubmissionService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .attendance.tracker import AttendanceTracker
from .auth.mailer import FlaskMailMailer, LogMailer, Mailer
from .auth.otp import KeyValueStore, OtpStore
from .auth.tokens import TokenService
from .core.constants import DEFAULT_JWT_EXPIRES_DAYS, DEFAULT_OTP_TTL_SECONDS
from .courses.mysql_course_repository import MySQLCourseRepository
from .courses.mysql_enrollment_repository import MySQLEnrollmentRepository
from .courses.repository import CourseRepository, EnrollmentRepository
from .courses.service import CourseService
from .database.connection import DBConfig, DatabaseConnection
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .sessions.service import SessionService
from .sessions.video import JitsiLinkProvider
from .storage.uploads import UploadStore
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository
    courses_repo: CourseRepository
    enrollments_repo: EnrollmentRepository
    sessions_repo: SessionRepository
    attendance_repo: AttendanceRepository
    assignments_repo: AssignmentRepository
    submissions_repo: SubmissionRepository

    tokens: TokenService
    otp_store: OtpStore
    uploads: UploadStore

    auth_service: AuthService
    user_service: UserService
    course_service: CourseService
    session_service: SessionService
    attendance_tracker: AttendanceTracker
    attendance_service: AttendanceService
    assignment_service: AssignmentService
    submission_service: SubmissionService

    conn: Optional[DatabaseConnection] = None
    mailer: Optional[Mailer] = None


def assemble_container(
    *,
    users_repo: UserRepository,
    courses_repo: CourseRepository,
    enrollments_repo: EnrollmentRepository,
    sessions_repo: SessionRepository,
    attendance_repo: AttendanceRepository,
    assignments_repo: AssignmentRepository,
    submissions_repo: SubmissionRepository,
    tokens: TokenService,
    otp_client: KeyValueStore,
    mailer: Mailer,
    uploads: UploadStore,
    video: JitsiLinkProvider,
    otp_ttl_seconds: int = DEFAULT_OTP_TTL_SECONDS,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services on top of the given repositories (MySQL in the app, in-memory in tests)."""
    otp_store = OtpStore(otp_client, ttl_seconds=otp_ttl_seconds)
    tracker = AttendanceTracker(attendance_repo)

    return Container(
        users_repo=users_repo,
        courses_repo=courses_repo,
        enrollments_repo=enrollments_repo,
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        assignments_repo=assignments_repo,
        submissions_repo=submissions_repo,
        tokens=tokens,
        otp_store=otp_store,
        uploads=uploads,
        auth_service=AuthService(users_repo, tokens),
        user_service=UserService(users_repo, otp_store, mailer),
        course_service=CourseService(
            courses_repo,
            enrollments_repo,
            users_repo,
            sessions_repo,
            attendance_repo,
            assignments_repo,
            submissions_repo,
        ),
        session_service=SessionService(
            sessions_repo,
            courses_repo,
            enrollments_repo,
            attendance_repo,
            tracker,
            video,
        ),
        attendance_tracker=tracker,
        attendance_service=AttendanceService(
            attendance_repo,
            sessions_repo,
            courses_repo,
            enrollments_repo,
            users_repo,
            tracker,
        ),
        assignment_service=AssignmentService(assignments_repo, submissions_repo, courses_repo, enrollments_repo),
        submission_service=SubmissionService(
            submissions_repo,
            assignments_repo,
            courses_repo,
            enrollments_repo,
            users_repo,
        ),
        conn=conn,
        mailer=mailer,
    )


def build_mailer(settings: Any) -> Mailer:
    # no MAIL_SERVER: emails only go to the log
    if not getattr(settings, "MAIL_SERVER", ""):
        return LogMailer()
    return FlaskMailMailer()


def build_container(*, db_config: dict, settings: Any) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    return assemble_container(
        users_repo=MySQLUserRepository(conn),
        courses_repo=MySQLCourseRepository(conn),
        enrollments_repo=MySQLEnrollmentRepository(conn),
        sessions_repo=MySQLSessionRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        assignments_repo=MySQLAssignmentRepository(conn),
        submissions_repo=MySQLSubmissionRepository(conn),
        tokens=TokenService(
            getattr(settings, "JWT_SECRET"),
            expires_days=int(getattr(settings, "JWT_EXPIRES_DAYS", DEFAULT_JWT_EXPIRES_DAYS)),
        ),
        otp_client=redis.Redis.from_url(getattr(settings, "REDIS_URL"), decode_responses=True),
        mailer=build_mailer(settings),
        uploads=UploadStore(getattr(settings, "UPLOAD_FOLDER", "uploads")),
        video=JitsiLinkProvider(
            domain=getattr(settings, "JITSI_DOMAIN", "meet.jit.si"),
            app_id=getattr(settings, "JITSI_APP_ID", ""),
            api_key=getattr(settings, "JITSI_API_KEY", ""),
        ),
        otp_ttl_seconds=int(getattr(settings, "OTP_TTL_SECONDS", DEFAULT_OTP_TTL_SECONDS)),
        conn=conn,
    )
