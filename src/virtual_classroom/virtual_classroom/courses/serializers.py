from __future__ import annotations

from ..common.datetime_utils import isoformat
from ..users.serializers import summary_to_dict
from .model import Course, CourseView, Enrollment


def course_to_dict(course: Course) -> dict:
    return {
        "id": course.course_id,
        "title": course.title,
        "description": course.description,
        "teacher": course.teacher_id,
        "subject": course.subject,
        "coverImage": course.cover_image,
        "startDate": isoformat(course.start_date),
        "endDate": isoformat(course.end_date),
        "createdAt": isoformat(course.created_at),
    }


def course_view_to_dict(view: CourseView) -> dict:
    data = course_to_dict(view.course)
    if view.teacher is not None:
        data["teacher"] = summary_to_dict(view.teacher)
    if view.enrollment_count is not None:
        data["enrollmentCount"] = view.enrollment_count
    if view.is_enrolled is not None:
        data["isEnrolled"] = view.is_enrolled
    if view.is_teacher is not None:
        data["isTeacher"] = view.is_teacher
    return data


def enrollment_to_dict(enrollment: Enrollment) -> dict:
    return {
        "id": enrollment.enrollment_id,
        "course": enrollment.course_id,
        "student": enrollment.student_id,
        "status": enrollment.status.value,
        "grade": enrollment.grade,
        "enrollmentDate": isoformat(enrollment.enrolled_at),
    }
