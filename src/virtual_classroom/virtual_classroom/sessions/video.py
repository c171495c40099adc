from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ..core.enums import Role
from ..users.model import User

DEFAULT_JITSI_DOMAIN = "meet.jit.si"
ROOM_TOKEN_TTL = timedelta(hours=24)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class VideoRoom:
    room_name: str
    video_link: str
    host_video_link: str
    token: Optional[str] = None


class JitsiLinkProvider:
    """Generates Jitsi room names and links. No calls to the video service are made."""

    def __init__(self, *, domain: str = DEFAULT_JITSI_DOMAIN, app_id: str = "", api_key: str = ""):
        self.domain = domain or DEFAULT_JITSI_DOMAIN
        self._app_id = app_id
        self._api_key = api_key

    def room_name(self, prefix: str = "") -> str:
        sanitized = _NON_ALNUM.sub("", prefix or "").lower()
        unique = uuid.uuid4().hex[:8]
        return f"{sanitized}_classroom_{unique}" if sanitized else f"classroom_{unique}"

    def link(self, room_name: str) -> str:
        return f"https://{self.domain}/{room_name}"

    def fallback_room(self, session_id: int) -> str:
        return f"classroom_{str(session_id)[:8]}"

    def room_token(self, user: User, room_name: str, *, now: Optional[datetime] = None) -> Optional[str]:
        """HS256 room token, only when both an app id and an api key are configured."""
        if not self._app_id or not self._api_key:
            return None
        now = now or datetime.now(timezone.utc)
        payload = {
            "context": {
                "user": {
                    "id": user.user_id,
                    "name": user.name,
                    "email": user.email,
                    "avatar": user.profile_picture,
                    "moderator": user.role == Role.TEACHER,
                }
            },
            "aud": self._app_id,
            "iss": self._app_id,
            "sub": self.domain,
            "room": room_name,
            "exp": int((now + ROOM_TOKEN_TTL).timestamp()),
        }
        return jwt.encode(payload, self._api_key, algorithm="HS256")

    def create_room(self, host: User, course_title: str) -> VideoRoom:
        prefix = _WHITESPACE.sub("", (course_title or "")[:10]) or "class"
        room = self.room_name(prefix)
        link = self.link(room)
        token = self.room_token(host, room)
        host_link = f"{link}?jwt={token}" if token else link
        return VideoRoom(room_name=room, video_link=link, host_video_link=host_link, token=token)
