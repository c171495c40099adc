from __future__ import annotations

from flask import Flask, request

from ..auth.guards import current_user, make_auth_required
from ..common.responses import ok
from ..common.validators import FieldErrors, as_dict
from ..core.enums import Role
from ..container import Container
from ..users.serializers import summary_to_dict, user_to_dict
from .serializers import course_to_dict, course_view_to_dict, enrollment_to_dict


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.auth_service)
    courses = container.course_service

    def _payload() -> dict:
        if request.is_json:
            return as_dict(request.get_json(silent=True))
        return request.form.to_dict()

    @app.route("/api/courses", methods=["POST"], endpoint="courses_create")
    @auth_required(Role.TEACHER)
    def create_course():
        cover = container.uploads.save_optional(request.files.get("coverImage"), "courses")
        course = courses.create_course(current_user(), _payload(), cover_image=cover)
        return ok(course_to_dict(course), status=201)

    @app.route("/api/courses", methods=["GET"], endpoint="courses_list")
    @auth_required()
    def list_courses():
        fields = FieldErrors(request.args.to_dict())
        teacher_id = fields.integer("teacher", label="teacher")
        fields.raise_if_any()
        views = courses.list_courses(
            teacher_id=teacher_id,
            subject=request.args.get("subject"),
            search=request.args.get("search"),
        )
        return ok([course_view_to_dict(v) for v in views], count=len(views))

    @app.route("/api/courses/my-courses", methods=["GET"], endpoint="courses_mine")
    @app.route("/api/courses/teaching", methods=["GET"], endpoint="courses_teaching")
    @auth_required(Role.TEACHER)
    def teacher_courses():
        items = courses.list_teacher_courses(current_user())
        return ok([course_to_dict(c) for c in items], count=len(items))

    @app.route("/api/courses/enrolled", methods=["GET"], endpoint="courses_enrolled")
    @auth_required(Role.STUDENT)
    def enrolled_courses():
        views = courses.list_enrolled_courses(current_user())
        return ok([course_view_to_dict(v) for v in views], count=len(views))

    @app.route("/api/courses/<int:course_id>", methods=["GET"], endpoint="courses_get")
    @auth_required()
    def get_course(course_id: int):
        return ok(course_view_to_dict(courses.get_course(current_user(), course_id)))

    @app.route("/api/courses/<int:course_id>", methods=["PUT"], endpoint="courses_update")
    @auth_required(Role.TEACHER)
    def update_course(course_id: int):
        cover = container.uploads.save_optional(request.files.get("coverImage"), "courses")
        course = courses.update_course(current_user(), course_id, _payload(), cover_image=cover)
        return ok(course_to_dict(course))

    @app.route("/api/courses/<int:course_id>", methods=["DELETE"], endpoint="courses_delete")
    @auth_required(Role.TEACHER)
    def delete_course(course_id: int):
        courses.delete_course(current_user(), course_id)
        return ok({})

    @app.route("/api/courses/<int:course_id>/enroll", methods=["POST"], endpoint="courses_enroll")
    @auth_required(Role.STUDENT)
    def enroll(course_id: int):
        enrollment, created = courses.enroll(current_user(), course_id)
        if created:
            return ok(enrollment_to_dict(enrollment), status=201, message="Enrolled in the course successfully")
        return ok(enrollment_to_dict(enrollment), message="Re-enrolled in the course successfully")

    @app.route("/api/courses/<int:course_id>/drop", methods=["PUT"], endpoint="courses_drop")
    @auth_required(Role.STUDENT)
    def drop(course_id: int):
        enrollment = courses.drop(current_user(), course_id)
        return ok(enrollment_to_dict(enrollment), message="Dropped from the course successfully")

    @app.route("/api/courses/<int:course_id>/students", methods=["GET"], endpoint="courses_students")
    @auth_required(Role.TEACHER)
    def list_students(course_id: int):
        students = courses.list_students(current_user(), course_id)
        return ok([summary_to_dict(s) for s in students], count=len(students))

    @app.route("/api/courses/<int:course_id>/available-students", methods=["GET"], endpoint="courses_available_students")
    @auth_required(Role.TEACHER)
    def available_students(course_id: int):
        students = courses.list_available_students(current_user(), course_id)
        return ok([user_to_dict(s) for s in students], count=len(students))

    @app.route("/api/courses/<int:course_id>/students", methods=["POST"], endpoint="courses_add_student")
    @auth_required(Role.TEACHER)
    def add_student(course_id: int):
        fields = FieldErrors(as_dict(request.get_json(silent=True)))
        student_id = fields.integer("studentId", required=True, label="Student ID")
        fields.raise_if_any()
        enrollment = courses.add_student(current_user(), course_id, student_id)
        return ok(enrollment_to_dict(enrollment), status=201, message="Student added to the course")

    @app.route(
        "/api/courses/<int:course_id>/students/<int:student_id>",
        methods=["DELETE"],
        endpoint="courses_remove_student",
    )
    @auth_required(Role.TEACHER)
    def remove_student(course_id: int, student_id: int):
        courses.remove_student(current_user(), course_id, student_id)
        return ok(message="Student removed from the course")
