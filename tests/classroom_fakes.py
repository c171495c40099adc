"""In-memory repositories and a container builder for service and API tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from werkzeug.security import generate_password_hash

from src.virtual_classroom.virtual_classroom.assignments.model import Assignment, Submission
from src.virtual_classroom.virtual_classroom.attendance.model import (
    AttendanceRecord,
    BulkWriteResult,
    with_recomputed_duration,
)
from src.virtual_classroom.virtual_classroom.auth.tokens import TokenService
from src.virtual_classroom.virtual_classroom.container import Container, assemble_container
from src.virtual_classroom.virtual_classroom.core.enums import EnrollmentStatus, Role, VideoProvider
from src.virtual_classroom.virtual_classroom.core.exceptions import DuplicateKeyError
from src.virtual_classroom.virtual_classroom.courses.model import Course, Enrollment
from src.virtual_classroom.virtual_classroom.sessions.model import ClassSession
from src.virtual_classroom.virtual_classroom.sessions.video import JitsiLinkProvider
from src.virtual_classroom.virtual_classroom.storage.uploads import UploadStore
from src.virtual_classroom.virtual_classroom.users.model import User, UserSummary

BASE_TIME = datetime(2026, 3, 2, 9, 0, 0)


class _Clock:
    """Strictly increasing created_at values so newest-first ordering is deterministic."""

    def __init__(self):
        self._tick = 0

    def next(self) -> datetime:
        self._tick += 1
        return BASE_TIME + timedelta(seconds=self._tick)


class FakeUserRepo:
    def __init__(self):
        self._next_id = 1
        self._users: dict[int, User] = {}
        self._clock = _Clock()

    def add(self, name: str, email: str, role: Role, *, password: str = "secret1", email_verified: bool = False) -> User:
        user_id = self.create_user(name=name, email=email, password_hash=generate_password_hash(password), role=role)
        if email_verified:
            self.set_email_verified(user_id)
        return self._users[user_id]

    def get_by_id(self, user_id):
        return self._users.get(int(user_id))

    def get_by_email(self, email):
        email = (email or "").lower()
        return next((u for u in self._users.values() if u.email == email), None)

    def create_user(self, *, name, email, password_hash, role):
        user_id = self._next_id
        self._next_id += 1
        self._users[user_id] = User(
            user_id=user_id,
            name=name,
            email=email.lower(),
            password_hash=password_hash,
            role=role,
            created_at=self._clock.next(),
        )
        return user_id

    def update_profile(self, user_id, *, name, bio, profile_picture):
        user = self._users.get(int(user_id))
        if not user:
            return False
        self._users[user.user_id] = replace(user, name=name, bio=bio, profile_picture=profile_picture)
        return True

    def set_password_hash(self, user_id, password_hash):
        user = self._users[int(user_id)]
        self._users[user.user_id] = replace(user, password_hash=password_hash)
        return True

    def set_email_verified(self, user_id):
        user = self._users[int(user_id)]
        self._users[user.user_id] = replace(user, email_verified=True)
        return True

    def list_users(self, *, role=None):
        users = [u for u in self._users.values() if role is None or u.role == role]
        return sorted(users, key=lambda u: u.created_at, reverse=True)

    def list_summaries(self, user_ids):
        return [
            UserSummary(user_id=u.user_id, name=u.name, email=u.email, profile_picture=u.profile_picture)
            for u in (self._users.get(int(i)) for i in user_ids)
            if u is not None
        ]


class FakeCourseRepo:
    def __init__(self):
        self._next_id = 1
        self.courses: dict[int, Course] = {}
        self._clock = _Clock()

    def add(self, teacher: User, title: str = "Algebra I", **overrides) -> Course:
        course_id = self.create(
            title=title,
            description=overrides.get("description", ""),
            teacher_id=teacher.user_id,
            subject=overrides.get("subject", "Math"),
            cover_image="",
            start_date=overrides.get("start_date", BASE_TIME),
            end_date=overrides.get("end_date", BASE_TIME + timedelta(days=90)),
        )
        return self.courses[course_id]

    def get_by_id(self, course_id):
        return self.courses.get(int(course_id))

    def create(self, *, title, description, teacher_id, subject, cover_image, start_date, end_date):
        course_id = self._next_id
        self._next_id += 1
        self.courses[course_id] = Course(
            course_id=course_id,
            title=title,
            description=description,
            teacher_id=int(teacher_id),
            subject=subject,
            cover_image=cover_image,
            start_date=start_date,
            end_date=end_date,
            created_at=self._clock.next(),
        )
        return course_id

    def update(self, course):
        self.courses[course.course_id] = course
        return True

    def delete(self, course_id):
        return self.courses.pop(int(course_id), None) is not None

    def search(self, *, teacher_id=None, subject=None, text=None):
        found = []
        for c in self.courses.values():
            if teacher_id is not None and c.teacher_id != int(teacher_id):
                continue
            if subject and subject.lower() not in c.subject.lower():
                continue
            if text and text.lower() not in c.title.lower() and text.lower() not in c.description.lower():
                continue
            found.append(c)
        return sorted(found, key=lambda c: c.created_at, reverse=True)

    def list_by_ids(self, course_ids):
        wanted = {int(i) for i in course_ids}
        return sorted((c for c in self.courses.values() if c.course_id in wanted), key=lambda c: c.created_at, reverse=True)


class FakeEnrollmentRepo:
    def __init__(self):
        self._next_id = 1
        self.enrollments: dict[int, Enrollment] = {}

    def add(self, student: User, course: Course, status: EnrollmentStatus = EnrollmentStatus.ACTIVE) -> Enrollment:
        self.create(student_id=student.user_id, course_id=course.course_id, status=status)
        return self.get(student_id=student.user_id, course_id=course.course_id)

    def get(self, *, student_id, course_id):
        return next(
            (e for e in self.enrollments.values() if e.student_id == int(student_id) and e.course_id == int(course_id)),
            None,
        )

    def create(self, *, student_id, course_id, status=EnrollmentStatus.ACTIVE):
        if self.get(student_id=student_id, course_id=course_id):
            raise DuplicateKeyError("Duplicate entry")
        enrollment_id = self._next_id
        self._next_id += 1
        self.enrollments[enrollment_id] = Enrollment(
            enrollment_id=enrollment_id,
            course_id=int(course_id),
            student_id=int(student_id),
            status=status,
            enrolled_at=BASE_TIME,
        )
        return enrollment_id

    def set_status(self, enrollment_id, status):
        current = self.enrollments[int(enrollment_id)]
        self.enrollments[current.enrollment_id] = replace(current, status=status)
        return True

    def list_for_course(self, course_id, *, status=EnrollmentStatus.ACTIVE):
        return [e for e in self.enrollments.values() if e.course_id == int(course_id) and e.status == status]

    def list_for_student(self, student_id, *, status=EnrollmentStatus.ACTIVE):
        return [e for e in self.enrollments.values() if e.student_id == int(student_id) and e.status == status]

    def delete_for_course(self, course_id):
        doomed = [k for k, e in self.enrollments.items() if e.course_id == int(course_id)]
        for k in doomed:
            del self.enrollments[k]
        return len(doomed)


class FakeSessionRepo:
    def __init__(self):
        self._next_id = 1
        self.sessions: dict[int, ClassSession] = {}

    def add(self, course: Course, title: str = "Week 1", *, start: datetime = BASE_TIME, hours: int = 1, **overrides) -> ClassSession:
        session_id = self.create(
            course_id=course.course_id,
            title=title,
            description="",
            start_time=start,
            end_time=start + timedelta(hours=hours),
            video_link=overrides.get("video_link", f"https://meet.jit.si/room_{self._next_id}"),
            host_video_link=overrides.get("host_video_link", ""),
            meeting_id=overrides.get("meeting_id", f"room_{self._next_id}"),
            video_provider=overrides.get("video_provider", VideoProvider.JITSI),
        )
        return self.sessions[session_id]

    def get_by_id(self, session_id):
        return self.sessions.get(int(session_id))

    def create(self, *, course_id, title, description, start_time, end_time, video_link, host_video_link, meeting_id, video_provider):
        session_id = self._next_id
        self._next_id += 1
        self.sessions[session_id] = ClassSession(
            session_id=session_id,
            course_id=int(course_id),
            title=title,
            description=description,
            start_time=start_time,
            end_time=end_time,
            video_link=video_link,
            host_video_link=host_video_link,
            meeting_id=meeting_id,
            video_provider=video_provider,
            created_at=BASE_TIME,
        )
        return session_id

    def save(self, session):
        self.sessions[session.session_id] = session
        return True

    def delete(self, session_id):
        return self.sessions.pop(int(session_id), None) is not None

    def list_for_courses(self, course_ids, *, newest_first=False):
        wanted = {int(i) for i in course_ids}
        found = [s for s in self.sessions.values() if s.course_id in wanted]
        return sorted(found, key=lambda s: s.start_time, reverse=newest_first)

    def list_upcoming(self, course_ids, *, now, limit):
        found = [s for s in self.list_for_courses(course_ids) if s.start_time > now and not s.is_completed]
        return found[:limit]

    def list_past(self, course_ids, *, now, limit):
        found = [s for s in self.list_for_courses(course_ids, newest_first=True) if s.end_time < now]
        return found[:limit]

    def list_ids_for_course(self, course_id):
        return [s.session_id for s in self.list_for_courses([course_id])]

    def delete_for_course(self, course_id):
        doomed = self.list_ids_for_course(course_id)
        for k in doomed:
            del self.sessions[k]
        return len(doomed)


class FakeAttendanceRepo:
    def __init__(self):
        self._next_id = 1
        self.records: dict[int, AttendanceRecord] = {}
        # set to a student id to make bulk_upsert fail midway on that row
        self.fail_bulk_on: Optional[int] = None

    def get_by_id(self, attendance_id):
        return self.records.get(int(attendance_id))

    def get_for_session_student(self, session_id, student_id):
        return next(
            (r for r in self.records.values() if r.session_id == int(session_id) and r.student_id == int(student_id)),
            None,
        )

    def create(self, *, session_id, student_id, status, notes, join_time, join_count=0):
        if self.get_for_session_student(session_id, student_id):
            raise DuplicateKeyError("Duplicate entry")
        attendance_id = self._next_id
        self._next_id += 1
        self.records[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id,
            session_id=int(session_id),
            student_id=int(student_id),
            status=status,
            notes=notes,
            join_time=join_time,
            join_count=join_count,
        )
        return attendance_id

    def update(self, record):
        self.records[record.attendance_id] = record
        return True

    def bulk_upsert(self, session_id, rows):
        staged = dict(self.records)
        next_id = self._next_id
        matched = modified = upserted = 0
        for row in rows:
            if self.fail_bulk_on == row.student_id:
                raise RuntimeError("write failed")
            current = next(
                (r for r in staged.values() if r.session_id == int(session_id) and r.student_id == row.student_id),
                None,
            )
            if current is None:
                staged[next_id] = AttendanceRecord(
                    attendance_id=next_id,
                    session_id=int(session_id),
                    student_id=row.student_id,
                    status=row.status,
                    notes=row.notes,
                    join_time=row.join_time,
                )
                next_id += 1
                upserted += 1
                continue
            matched += 1
            target = with_recomputed_duration(replace(current, status=row.status, notes=row.notes, join_time=row.join_time))
            if target != current:
                staged[current.attendance_id] = target
                modified += 1
        self.records = staged
        self._next_id = next_id
        return BulkWriteResult(matched=matched, modified=modified, upserted=upserted)

    def list_for_session(self, session_id):
        return [r for r in self.records.values() if r.session_id == int(session_id)]

    def list_for_student(self, student_id, session_ids):
        wanted = {int(i) for i in session_ids}
        return [r for r in self.records.values() if r.student_id == int(student_id) and r.session_id in wanted]

    def list_open(self, session_id, student_id=None):
        found = [
            r
            for r in self.records.values()
            if r.session_id == int(session_id)
            and r.is_open
            and (student_id is None or r.student_id == int(student_id))
        ]
        return sorted(found, key=lambda r: r.join_time or datetime.min, reverse=True)

    def count_by_status(self, session_ids, student_ids):
        sessions = {int(i) for i in session_ids}
        students = {int(i) for i in student_ids}
        counts: dict = {}
        for r in self.records.values():
            if r.session_id in sessions and r.student_id in students:
                key = (r.student_id, r.status)
                counts[key] = counts.get(key, 0) + 1
        return counts

    def delete_for_session(self, session_id):
        return self.delete_for_sessions([session_id])

    def delete_for_sessions(self, session_ids):
        wanted = {int(i) for i in session_ids}
        doomed = [k for k, r in self.records.items() if r.session_id in wanted]
        for k in doomed:
            del self.records[k]
        return len(doomed)


class FakeAssignmentRepo:
    def __init__(self):
        self._next_id = 1
        self.assignments: dict[int, Assignment] = {}

    def add(self, course: Course, *, due: datetime, title: str = "Homework 1", total_points: float = 100) -> Assignment:
        assignment_id = self.create(
            course_id=course.course_id,
            teacher_id=course.teacher_id,
            title=title,
            description="",
            due_date=due,
            total_points=total_points,
            attachments=[],
        )
        return self.assignments[assignment_id]

    def get_by_id(self, assignment_id):
        return self.assignments.get(int(assignment_id))

    def create(self, *, course_id, teacher_id, title, description, due_date, total_points, attachments):
        assignment_id = self._next_id
        self._next_id += 1
        self.assignments[assignment_id] = Assignment(
            assignment_id=assignment_id,
            course_id=int(course_id),
            teacher_id=int(teacher_id),
            title=title,
            description=description,
            due_date=due_date,
            total_points=total_points,
            attachments=tuple(attachments),
            created_at=BASE_TIME,
        )
        return assignment_id

    def update(self, assignment):
        self.assignments[assignment.assignment_id] = assignment
        return True

    def delete(self, assignment_id):
        return self.assignments.pop(int(assignment_id), None) is not None

    def list_for_courses(self, course_ids):
        wanted = {int(i) for i in course_ids}
        return sorted((a for a in self.assignments.values() if a.course_id in wanted), key=lambda a: a.due_date)

    def list_by_teacher(self, teacher_id):
        return sorted((a for a in self.assignments.values() if a.teacher_id == int(teacher_id)), key=lambda a: a.due_date)

    def list_ids_for_course(self, course_id):
        return [a.assignment_id for a in self.list_for_courses([course_id])]

    def delete_for_course(self, course_id):
        doomed = self.list_ids_for_course(course_id)
        for k in doomed:
            del self.assignments[k]
        return len(doomed)


class FakeSubmissionRepo:
    def __init__(self):
        self._next_id = 1
        self.submissions: dict[int, Submission] = {}

    def get_by_id(self, submission_id):
        return self.submissions.get(int(submission_id))

    def get_for_assignment_student(self, assignment_id, student_id):
        return next(
            (
                s
                for s in self.submissions.values()
                if s.assignment_id == int(assignment_id) and s.student_id == int(student_id)
            ),
            None,
        )

    def create(self, *, assignment_id, student_id, file_url, comment, submitted_at, status, is_late):
        if self.get_for_assignment_student(assignment_id, student_id):
            raise DuplicateKeyError("Duplicate entry")
        submission_id = self._next_id
        self._next_id += 1
        self.submissions[submission_id] = Submission(
            submission_id=submission_id,
            assignment_id=int(assignment_id),
            student_id=int(student_id),
            file_url=file_url,
            comment=comment,
            submitted_at=submitted_at,
            status=status,
            is_late=is_late,
        )
        return submission_id

    def update(self, submission):
        self.submissions[submission.submission_id] = submission
        return True

    def delete(self, submission_id):
        return self.submissions.pop(int(submission_id), None) is not None

    def list_for_assignment(self, assignment_id):
        return [s for s in self.submissions.values() if s.assignment_id == int(assignment_id)]

    def list_for_student(self, student_id, assignment_ids=None):
        wanted = None if assignment_ids is None else {int(i) for i in assignment_ids}
        found = [
            s
            for s in self.submissions.values()
            if s.student_id == int(student_id) and (wanted is None or s.assignment_id in wanted)
        ]
        return sorted(found, key=lambda s: s.submitted_at, reverse=True)

    def delete_for_assignments(self, assignment_ids):
        wanted = {int(i) for i in assignment_ids}
        doomed = [k for k, s in self.submissions.items() if s.assignment_id in wanted]
        for k in doomed:
            del self.submissions[k]
        return len(doomed)


class FakeRedis:
    """setex/get/delete with manual expiry."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def setex(self, name, time, value):
        self.values[name] = value
        self.ttls[name] = int(time)
        return True

    def get(self, name):
        return self.values.get(name)

    def delete(self, *names):
        removed = 0
        for name in names:
            if self.values.pop(name, None) is not None:
                removed += 1
            self.ttls.pop(name, None)
        return removed

    def expire_all(self):
        self.values.clear()
        self.ttls.clear()


class RecordingMailer:
    def __init__(self):
        self.sent: list[dict] = []

    def send(self, *, to, subject, body):
        self.sent.append({"to": to, "subject": subject, "body": body})


def build_test_container(upload_root: Path) -> Container:
    return assemble_container(
        users_repo=FakeUserRepo(),
        courses_repo=FakeCourseRepo(),
        enrollments_repo=FakeEnrollmentRepo(),
        sessions_repo=FakeSessionRepo(),
        attendance_repo=FakeAttendanceRepo(),
        assignments_repo=FakeAssignmentRepo(),
        submissions_repo=FakeSubmissionRepo(),
        tokens=TokenService("test-jwt-secret", expires_days=7),
        otp_client=FakeRedis(),
        mailer=RecordingMailer(),
        uploads=UploadStore(upload_root),
        video=JitsiLinkProvider(),
    )
