from __future__ import annotations

from ..common.datetime_utils import isoformat
from ..users.serializers import summary_to_dict
from .model import Assignment, AssignmentGradeStats, AssignmentView, Submission, SubmissionView


def assignment_to_dict(assignment: Assignment) -> dict:
    return {
        "id": assignment.assignment_id,
        "course": assignment.course_id,
        "teacher": assignment.teacher_id,
        "title": assignment.title,
        "description": assignment.description,
        "dueDate": isoformat(assignment.due_date),
        "totalPoints": assignment.total_points,
        "attachments": list(assignment.attachments),
        "createdAt": isoformat(assignment.created_at),
    }


def submission_to_dict(submission: Submission) -> dict:
    return {
        "id": submission.submission_id,
        "assignment": submission.assignment_id,
        "student": submission.student_id,
        "fileUrl": submission.file_url,
        "comment": submission.comment,
        "submittedAt": isoformat(submission.submitted_at),
        "status": submission.status.value,
        "isLate": submission.is_late,
        "grade": submission.grade,
        "feedback": submission.feedback,
        "gradedBy": submission.graded_by,
        "gradedAt": isoformat(submission.graded_at),
    }


def assignment_view_to_dict(view: AssignmentView) -> dict:
    data = assignment_to_dict(view.assignment)
    if view.is_teacher is not None:
        data["isTeacher"] = view.is_teacher
    if view.submitted is not None:
        data["submitted"] = view.submitted
        data["submission"] = (
            {
                "id": view.submission.submission_id,
                "status": view.submission.status.value,
                "grade": view.submission.grade,
                "submittedAt": isoformat(view.submission.submitted_at),
            }
            if view.submission is not None
            else None
        )
    return data


def submission_view_to_dict(view: SubmissionView) -> dict:
    data = submission_to_dict(view.submission)
    if view.student is not None:
        data["student"] = summary_to_dict(view.student)
    if view.assignment is not None:
        data["assignment"] = {
            "id": view.assignment.assignment_id,
            "title": view.assignment.title,
            "dueDate": isoformat(view.assignment.due_date),
            "totalPoints": view.assignment.total_points,
            "course": view.assignment.course_id,
        }
    return data


def grade_stats_to_dict(stats: AssignmentGradeStats) -> dict:
    return {
        "assignment": {
            "id": stats.assignment.assignment_id,
            "title": stats.assignment.title,
            "dueDate": isoformat(stats.assignment.due_date),
            "totalPoints": stats.assignment.total_points,
        },
        "stats": {
            "totalSubmissions": stats.total_submissions,
            "gradedSubmissions": stats.graded_submissions,
            "pendingSubmissions": stats.pending_submissions,
            "lateSubmissions": stats.late_submissions,
            "gradeStats": {
                "averageGrade": stats.average_grade,
                "highestGrade": stats.highest_grade,
                "lowestGrade": stats.lowest_grade,
            },
        },
    }
