from __future__ import annotations

from flask import Flask, request

from ..auth.guards import current_user, make_auth_required
from ..common.responses import ok
from ..common.validators import FieldErrors, as_dict
from ..core.enums import Role
from ..container import Container
from .serializers import (
    assignment_to_dict,
    assignment_view_to_dict,
    grade_stats_to_dict,
    submission_to_dict,
    submission_view_to_dict,
)


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.auth_service)
    assignments = container.assignment_service
    submissions = container.submission_service

    def _payload() -> dict:
        if request.is_json:
            return as_dict(request.get_json(silent=True))
        return request.form.to_dict()

    @app.route("/api/assignments", methods=["POST"], endpoint="assignments_create")
    @auth_required(Role.TEACHER)
    def create_assignment():
        files = container.uploads.save_many(request.files.getlist("files"), "assignments")
        assignment = assignments.create_assignment(current_user(), _payload(), attachments=files)
        return ok(assignment_to_dict(assignment), status=201)

    @app.route("/api/assignments/student", methods=["GET"], endpoint="assignments_student")
    @auth_required(Role.STUDENT)
    def student_assignments():
        views = assignments.list_for_student(current_user())
        return ok([assignment_view_to_dict(v) for v in views], count=len(views))

    @app.route("/api/assignments/teacher", methods=["GET"], endpoint="assignments_teacher")
    @auth_required(Role.TEACHER)
    def teacher_assignments():
        items = assignments.list_for_teacher(current_user())
        return ok([assignment_to_dict(a) for a in items], count=len(items))

    @app.route("/api/assignments/course/<int:course_id>", methods=["GET"], endpoint="assignments_by_course")
    @auth_required()
    def course_assignments(course_id: int):
        views = assignments.list_for_course(current_user(), course_id)
        return ok([assignment_view_to_dict(v) for v in views], count=len(views))

    @app.route("/api/assignments/<int:assignment_id>", methods=["GET"], endpoint="assignments_get")
    @auth_required()
    def get_assignment(assignment_id: int):
        return ok(assignment_view_to_dict(assignments.get_assignment(current_user(), assignment_id)))

    @app.route("/api/assignments/<int:assignment_id>", methods=["PUT"], endpoint="assignments_update")
    @auth_required(Role.TEACHER)
    def update_assignment(assignment_id: int):
        files = container.uploads.save_many(request.files.getlist("files"), "assignments")
        assignment = assignments.update_assignment(current_user(), assignment_id, _payload(), attachments=files)
        return ok(assignment_to_dict(assignment))

    @app.route("/api/assignments/<int:assignment_id>", methods=["DELETE"], endpoint="assignments_delete")
    @auth_required(Role.TEACHER)
    def delete_assignment(assignment_id: int):
        assignments.delete_assignment(current_user(), assignment_id)
        return ok({})

    @app.route("/api/assignments/<int:assignment_id>/submit", methods=["POST"], endpoint="assignments_submit")
    @auth_required(Role.STUDENT)
    def submit(assignment_id: int):
        upload = request.files.get("file") or next(iter(request.files.getlist("files")), None)
        file_url = container.uploads.save_optional(upload, "submissions")
        submission = submissions.submit(
            current_user(), assignment_id, file_url=file_url, comment=_payload().get("comment")
        )
        return ok(submission_to_dict(submission), status=201)

    @app.route(
        "/api/assignments/<int:assignment_id>/submissions",
        methods=["GET"],
        endpoint="assignments_submissions",
    )
    @auth_required(Role.TEACHER)
    def assignment_submissions(assignment_id: int):
        views = submissions.list_for_assignment(current_user(), assignment_id)
        return ok([submission_view_to_dict(v) for v in views], count=len(views))

    @app.route(
        "/api/assignments/submissions/<int:submission_id>/grade",
        methods=["POST"],
        endpoint="submissions_grade",
    )
    @auth_required(Role.TEACHER)
    def grade(submission_id: int):
        fields = FieldErrors(as_dict(request.get_json(silent=True)))
        grade_value = fields.number("grade", required=True, label="Grade")
        feedback = fields.string("feedback", label="Feedback")
        fields.raise_if_any()
        submission = submissions.grade(current_user(), submission_id, grade_value, feedback)
        return ok(submission_to_dict(submission))

    @app.route("/api/submissions/<int:submission_id>", methods=["GET"], endpoint="submissions_get")
    @auth_required()
    def get_submission(submission_id: int):
        return ok(submission_view_to_dict(submissions.get_submission(current_user(), submission_id)))

    @app.route("/api/submissions/<int:submission_id>", methods=["DELETE"], endpoint="submissions_delete")
    @auth_required()
    def delete_submission(submission_id: int):
        submissions.delete_submission(current_user(), submission_id)
        return ok({})

    @app.route("/api/submissions/student/<int:student_id>", methods=["GET"], endpoint="submissions_student")
    @auth_required()
    def student_submissions(student_id: int):
        views = submissions.list_for_student(current_user(), student_id)
        return ok([submission_view_to_dict(v) for v in views], count=len(views))

    @app.route("/api/submissions/stats/course/<int:course_id>", methods=["GET"], endpoint="submissions_course_stats")
    @auth_required(Role.TEACHER)
    def course_stats(course_id: int):
        stats = submissions.course_grade_stats(current_user(), course_id)
        return ok([grade_stats_to_dict(s) for s in stats])
