"""Ownership and membership decisions shared by every feature service."""

from __future__ import annotations

from enum import Enum

from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..courses.model import Course
from ..users.model import User


class Capability(str, Enum):
    OWNER = "owner"  # the teacher who owns the course
    MEMBER = "member"  # an actively enrolled student
    NONE = "none"


def course_capability(caller: User, course: Course, *, enrolled: bool = False) -> Capability:
    if caller.role == Role.TEACHER and course.teacher_id == caller.user_id:
        return Capability.OWNER
    if caller.role == Role.STUDENT and enrolled:
        return Capability.MEMBER
    return Capability.NONE


def require_owner(caller: User, course: Course, message: str) -> None:
    if course_capability(caller, course) != Capability.OWNER:
        raise AuthorizationError(message)


def require_member_or_owner(caller: User, course: Course, *, enrolled: bool, message: str) -> Capability:
    capability = course_capability(caller, course, enrolled=enrolled)
    if capability == Capability.NONE:
        raise AuthorizationError(message)
    return capability


def is_self(caller: User, user_id: int) -> bool:
    return caller.user_id == int(user_id)
