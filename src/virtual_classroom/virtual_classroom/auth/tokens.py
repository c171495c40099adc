from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ..core.constants import DEFAULT_JWT_EXPIRES_DAYS
from ..core.exceptions import AuthenticationError

JWT_ALGO = "HS256"


class TokenService:
    """Issues and verifies bearer tokens carrying the user id."""

    def __init__(self, secret: str, *, expires_days: int = DEFAULT_JWT_EXPIRES_DAYS):
        if not secret:
            raise ValueError("JWT secret must be defined")
        self._secret = secret
        self._expires = timedelta(days=int(expires_days))

    def issue(self, user_id: int, *, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "id": int(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self._expires).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGO)

    def verify(self, token: str) -> int:
        """Return the user id inside a valid token, else raise AuthenticationError."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[JWT_ALGO])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Your token has expired. Please log in again.")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token. Please log in again.")

        user_id = payload.get("id")
        if user_id is None:
            raise AuthenticationError("Invalid token. Please log in again.")
        return int(user_id)

    @staticmethod
    def from_header(header: Optional[str]) -> str:
        if not header or not header.startswith("Bearer"):
            raise AuthenticationError("Not authorized, no token provided in header")
        parts = header.split(" ", 1)
        token = parts[1].strip() if len(parts) == 2 else ""
        if not token:
            raise AuthenticationError("Not authorized, token missing in authorization header")
        return token
