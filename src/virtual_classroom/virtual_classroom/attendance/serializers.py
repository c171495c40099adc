from __future__ import annotations

from ..common.datetime_utils import isoformat
from ..users.serializers import summary_to_dict
from .model import (
    AttendanceRecord,
    AttendanceWithSession,
    AttendanceWithStudent,
    BulkWriteResult,
    CourseAttendanceStats,
    SessionAttendanceStats,
    SessionInfo,
)


def record_to_dict(record: AttendanceRecord) -> dict:
    return {
        "id": record.attendance_id,
        "session": record.session_id,
        "student": record.student_id,
        "status": record.status.value,
        "notes": record.notes,
        "joinTime": isoformat(record.join_time),
        "leaveTime": isoformat(record.leave_time),
        "duration": record.duration,
        "joinCount": record.join_count,
        "createdAt": isoformat(record.created_at),
        "updatedAt": isoformat(record.updated_at),
    }


def with_student_to_dict(item: AttendanceWithStudent) -> dict:
    data = record_to_dict(item.record)
    if item.student is not None:
        data["student"] = summary_to_dict(item.student)
    return data


def session_info_to_dict(info: SessionInfo) -> dict:
    return {
        "id": info.session_id,
        "title": info.title,
        "startTime": isoformat(info.start_time),
        "endTime": isoformat(info.end_time),
    }


def with_session_to_dict(item: AttendanceWithSession) -> dict:
    data = record_to_dict(item.record)
    if item.session is not None:
        data["session"] = session_info_to_dict(item.session)
    return data


def bulk_result_to_dict(result: BulkWriteResult) -> dict:
    return {"matched": result.matched, "modified": result.modified, "upserted": result.upserted}


def course_stats_to_list(stats: CourseAttendanceStats) -> list[dict]:
    return [
        {
            "student": {"id": row.student.user_id, "name": row.student.name},
            "stats": {
                "present": row.present,
                "absent": row.absent,
                "late": row.late,
                "excused": row.excused,
                "total": row.total,
                "percentage": row.percentage,
            },
        }
        for row in stats.students
    ]


def session_stats_to_dict(stats: SessionAttendanceStats) -> dict:
    return {
        "uniqueStudents": stats.unique_students,
        "averageDurationMinutes": stats.average_duration_minutes,
        "maxDurationMinutes": stats.max_duration_minutes,
        "totalJoins": stats.total_joins,
    }
