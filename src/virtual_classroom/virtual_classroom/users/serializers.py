from __future__ import annotations

from typing import Optional

from ..common.datetime_utils import isoformat
from .model import User, UserSummary


def user_to_dict(user: User, *, token: Optional[str] = None) -> dict:
    data = {
        "id": user.user_id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "profilePicture": user.profile_picture,
        "bio": user.bio,
        "emailVerified": user.email_verified,
        "createdAt": isoformat(user.created_at),
    }
    if token is not None:
        data["token"] = token
    return data


def summary_to_dict(summary: Optional[UserSummary]) -> Optional[dict]:
    if summary is None:
        return None
    return {
        "id": summary.user_id,
        "name": summary.name,
        "email": summary.email,
        "profilePicture": summary.profile_picture,
    }
