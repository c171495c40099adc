from __future__ import annotations

from ..common.datetime_utils import isoformat
from .model import ClassSession, JoinInfo, SessionStatus, SessionView


def session_to_dict(session: ClassSession) -> dict:
    return {
        "id": session.session_id,
        "course": session.course_id,
        "title": session.title,
        "description": session.description,
        "startTime": isoformat(session.start_time),
        "endTime": isoformat(session.end_time),
        "videoLink": session.video_link,
        "hostVideoLink": session.host_video_link,
        "meetingId": session.meeting_id,
        "recordingUrl": session.recording_url,
        "videoProvider": session.video_provider.value,
        "isActive": session.is_active,
        "activatedAt": isoformat(session.activated_at),
        "isCompleted": session.is_completed,
        "createdAt": isoformat(session.created_at),
    }


def session_view_to_dict(view: SessionView) -> dict:
    data = session_to_dict(view.session)
    if view.course_title is not None:
        data["course"] = {"id": view.session.course_id, "title": view.course_title}
    if view.video_link is not None:
        data["videoLink"] = view.video_link
    if view.is_teacher is not None:
        data["isTeacher"] = view.is_teacher
        if not view.is_teacher:
            data.pop("hostVideoLink", None)
    return data


def join_info_to_dict(info: JoinInfo) -> dict:
    return {
        "sessionId": info.session_id,
        "liveClassData": {"id": info.session_id, "title": info.title, "course": info.course_title},
        "videoLink": info.video_link,
        "videoProvider": info.video_provider.value,
        "meetingId": info.meeting_id,
    }


def status_to_dict(status: SessionStatus) -> dict:
    return {
        "isActive": status.is_active,
        "isCompleted": status.is_completed,
        "activatedAt": isoformat(status.activated_at),
        "timingStatus": status.timing_status,
        "canJoin": status.can_join,
    }
