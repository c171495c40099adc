from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a classroom account.

    Plain data object (no DB access code).
    """

    user_id: int
    name: str
    email: str
    password_hash: str
    role: Role
    bio: str = ""
    profile_picture: str = ""
    email_verified: bool = False
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class UserSummary:
    """Minimal identity fields shown next to attendance rows, submissions, rosters."""

    user_id: int
    name: str
    email: str
    profile_picture: str = ""
