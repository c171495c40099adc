from __future__ import annotations

from flask import Flask, request

from ..attendance.serializers import record_to_dict
from ..auth.guards import current_user, make_auth_required
from ..common.responses import ok
from ..common.validators import FieldErrors, as_dict
from ..core.enums import Role
from ..container import Container
from .serializers import join_info_to_dict, session_to_dict, session_view_to_dict, status_to_dict


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.auth_service)
    sessions = container.session_service

    @app.route("/api/sessions", methods=["POST"], endpoint="sessions_create")
    @auth_required(Role.TEACHER)
    def create_session():
        session = sessions.create_session(current_user(), as_dict(request.get_json(silent=True)))
        return ok(session_to_dict(session), status=201)

    @app.route("/api/sessions", methods=["GET"], endpoint="sessions_list")
    @auth_required()
    def list_sessions():
        views = sessions.list_sessions(current_user())
        return ok([session_view_to_dict(v) for v in views], count=len(views))

    @app.route("/api/sessions/upcoming", methods=["GET"], endpoint="sessions_upcoming")
    @auth_required()
    def upcoming():
        views = sessions.list_upcoming(current_user())
        return ok([session_view_to_dict(v) for v in views], count=len(views))

    @app.route("/api/sessions/past", methods=["GET"], endpoint="sessions_past")
    @auth_required()
    def past():
        views = sessions.list_past(current_user())
        return ok([session_view_to_dict(v) for v in views], count=len(views))

    @app.route("/api/sessions/course/<int:course_id>", methods=["GET"], endpoint="sessions_by_course")
    @auth_required()
    def by_course(course_id: int):
        items = sessions.list_for_course(current_user(), course_id)
        return ok([session_to_dict(s) for s in items], count=len(items))

    @app.route("/api/sessions/<int:session_id>", methods=["GET"], endpoint="sessions_get")
    @auth_required()
    def get_session(session_id: int):
        return ok(session_view_to_dict(sessions.get_session(current_user(), session_id)))

    @app.route("/api/sessions/<int:session_id>", methods=["PUT"], endpoint="sessions_update")
    @auth_required(Role.TEACHER)
    def update_session(session_id: int):
        session = sessions.update_session(current_user(), session_id, as_dict(request.get_json(silent=True)))
        return ok(session_to_dict(session))

    @app.route("/api/sessions/<int:session_id>", methods=["DELETE"], endpoint="sessions_delete")
    @auth_required(Role.TEACHER)
    def delete_session(session_id: int):
        sessions.delete_session(current_user(), session_id)
        return ok({}, message="Session deleted successfully")

    @app.route("/api/sessions/<int:session_id>/complete", methods=["PUT"], endpoint="sessions_complete")
    @auth_required(Role.TEACHER)
    def complete_session(session_id: int):
        data = as_dict(request.get_json(silent=True))
        session = sessions.complete_session(current_user(), session_id, recording_url=data.get("recordingUrl"))
        return ok(session_to_dict(session))

    @app.route("/api/sessions/<int:session_id>/start", methods=["POST"], endpoint="sessions_start")
    @auth_required(Role.TEACHER)
    def start_session(session_id: int):
        info = sessions.start_session(current_user(), session_id)
        return ok(join_info_to_dict(info), message=info.message)

    @app.route("/api/sessions/<int:session_id>/join", methods=["POST"], endpoint="sessions_join")
    @auth_required()
    def join_session(session_id: int):
        return ok(join_info_to_dict(sessions.join_session(current_user(), session_id)))

    @app.route("/api/sessions/<int:session_id>/leave", methods=["POST"], endpoint="sessions_leave")
    @auth_required(Role.STUDENT)
    def leave_session(session_id: int):
        record = sessions.leave_session(current_user(), session_id)
        if record is None:
            return ok(message="No open attendance record for this session")
        return ok(record_to_dict(record))

    @app.route("/api/sessions/<int:session_id>/end", methods=["POST"], endpoint="sessions_end")
    @auth_required(Role.TEACHER)
    def end_session(session_id: int):
        fields = FieldErrors(as_dict(request.get_json(silent=True)))
        recording_url = fields.string("recordingUrl", label="Recording URL")
        is_completed = fields.boolean("isCompleted", label="isCompleted")
        fields.raise_if_any()
        session = sessions.end_session(
            current_user(), session_id, recording_url=recording_url, is_completed=bool(is_completed)
        )
        return ok(session_to_dict(session))

    @app.route("/api/sessions/<int:session_id>/status", methods=["GET"], endpoint="sessions_status")
    @auth_required()
    def session_status(session_id: int):
        return ok(status_to_dict(sessions.get_status(session_id)))
