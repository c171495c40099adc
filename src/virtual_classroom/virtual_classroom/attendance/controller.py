from __future__ import annotations

from flask import Flask, jsonify, request

from ..auth.guards import current_user, make_auth_required
from ..common.responses import ok
from ..common.validators import FieldErrors, as_dict
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import ValidationError
from ..container import Container
from .model import MarkRequest
from .serializers import (
    bulk_result_to_dict,
    course_stats_to_list,
    record_to_dict,
    session_stats_to_dict,
    with_session_to_dict,
    with_student_to_dict,
)

_STATUSES = [s.value for s in AttendanceStatus]


def _parse_bulk_records(raw) -> list[MarkRequest]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("Records must be a non-empty list", errors=[{"field": "records", "message": "Records must be a non-empty list"}])

    items: list[MarkRequest] = []
    for index, entry in enumerate(raw):
        fields = FieldErrors(as_dict(entry))
        student_id = fields.integer("student", required=True, label=f"records[{index}].student")
        status = fields.choice("status", _STATUSES, required=True, label=f"records[{index}].status")
        notes = fields.string("notes", label=f"records[{index}].notes")
        fields.raise_if_any()
        items.append(MarkRequest(student_id=student_id, status=AttendanceStatus(status), notes=notes))
    return items


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.auth_service)
    attendance = container.attendance_service

    @app.route("/api/attendance", methods=["POST"], endpoint="attendance_mark")
    @auth_required(Role.TEACHER)
    def mark_attendance():
        fields = FieldErrors(as_dict(request.get_json(silent=True)))
        session_id = fields.integer("session", required=True, label="Session ID")
        student_id = fields.integer("student", required=True, label="Student ID")
        status = fields.choice("status", _STATUSES, required=True, label="status")
        notes = fields.string("notes", label="Notes")
        fields.raise_if_any()

        record = attendance.mark_attendance(current_user(), session_id, student_id, AttendanceStatus(status), notes)
        return ok(record_to_dict(record), status=201)

    @app.route("/api/attendance/bulk", methods=["POST"], endpoint="attendance_bulk")
    @auth_required(Role.TEACHER)
    def mark_bulk():
        payload = as_dict(request.get_json(silent=True))
        fields = FieldErrors(payload)
        session_id = fields.integer("session", required=True, label="Session ID")
        fields.raise_if_any()
        records = _parse_bulk_records(payload.get("records"))

        result = attendance.mark_bulk_attendance(current_user(), session_id, records)
        return ok(bulk_result_to_dict(result), message="Bulk attendance marked successfully")

    @app.route("/api/attendance/session/<int:session_id>", methods=["GET"], endpoint="attendance_session")
    @auth_required()
    def session_attendance(session_id: int):
        items = attendance.get_session_attendance(current_user(), session_id)
        return ok([with_student_to_dict(i) for i in items], count=len(items))

    @app.route("/api/attendance/session/<int:session_id>/stats", methods=["GET"], endpoint="attendance_session_stats")
    @auth_required(Role.TEACHER)
    def session_stats(session_id: int):
        return ok(session_stats_to_dict(attendance.get_session_stats(current_user(), session_id)))

    @app.route(
        "/api/attendance/student/<int:student_id>/course/<int:course_id>",
        methods=["GET"],
        endpoint="attendance_student_course",
    )
    @auth_required()
    def student_course_attendance(student_id: int, course_id: int):
        items = attendance.get_student_course_attendance(current_user(), student_id, course_id)
        return ok([with_session_to_dict(i) for i in items], count=len(items))

    @app.route("/api/attendance/stats/course/<int:course_id>", methods=["GET"], endpoint="attendance_course_stats")
    @auth_required(Role.TEACHER)
    def course_stats(course_id: int):
        stats = attendance.get_course_attendance_stats(current_user(), course_id)
        return jsonify(
            {
                "success": True,
                "totalSessions": stats.total_sessions,
                "totalStudents": stats.total_students,
                "data": course_stats_to_list(stats),
            }
        )

    @app.route("/api/attendance/<int:attendance_id>", methods=["PUT"], endpoint="attendance_update")
    @auth_required(Role.TEACHER)
    def update_attendance(attendance_id: int):
        payload = as_dict(request.get_json(silent=True))
        fields = FieldErrors(payload)
        status = fields.choice("status", _STATUSES, label="status")
        join_time = fields.timestamp("joinTime", label="Join time")
        leave_time = fields.timestamp("leaveTime", label="Leave time")
        fields.raise_if_any()

        changes = {}
        if "notes" in payload:
            changes["notes"] = "" if payload["notes"] is None else str(payload["notes"])

        record = attendance.update_attendance(
            current_user(),
            attendance_id,
            status=AttendanceStatus(status) if status else None,
            join_time=join_time,
            leave_time=leave_time,
            **changes,
        )
        return ok(record_to_dict(record))
