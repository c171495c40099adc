from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class AttendanceStatus(str, Enum):
    """Attendance status stored per (session, student)."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    DROPPED = "dropped"


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    LATE = "late"
    GRADED = "graded"
    RESUBMITTED = "resubmitted"


class VideoProvider(str, Enum):
    JITSI = "jitsi"
    WHEREBY = "whereby"
    OTHER = "other"


class OtpPurpose(str, Enum):
    """Key namespaces for one-time codes."""

    VERIFY_EMAIL = "verify-email"
    PASSWORD_RESET = "password-reset"
