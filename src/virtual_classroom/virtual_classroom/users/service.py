from __future__ import annotations

import logging
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..auth.mailer import Mailer
from ..auth.otp import OtpStore
from ..auth.tokens import TokenService
from ..common.validators import FieldErrors
from ..core.constants import MIN_PASSWORD_LENGTH, NAME_MAX_LENGTH, NAME_MIN_LENGTH
from ..core.enums import OtpPurpose, Role
from ..core.exceptions import AuthenticationError, InvalidStateError, NotFoundError, ValidationError
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)

_SELF_SERVICE_ROLES = (Role.STUDENT.value, Role.TEACHER.value)


class AuthService:
    """Use cases: register, login, and resolving a bearer token to a user."""

    def __init__(self, users: UserRepository, tokens: TokenService):
        self._users = users
        self._tokens = tokens

    def register(self, payload: dict) -> tuple[User, str]:
        fields = FieldErrors(payload)
        name = fields.string("name", required=True, label="Name", min_len=NAME_MIN_LENGTH, max_len=NAME_MAX_LENGTH)
        email = fields.email("email")
        password = payload.get("password") if isinstance(payload, dict) else None
        if not password:
            fields.add("password", "Password is required")
        elif len(str(password)) < MIN_PASSWORD_LENGTH:
            fields.add("password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        role = fields.choice("role", _SELF_SERVICE_ROLES, label="role") or Role.STUDENT.value
        fields.raise_if_any()

        if self._users.get_by_email(email):
            raise InvalidStateError("User already exists with this email")

        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(str(password)),
            role=Role(role),
        )
        user = self._users.get_by_id(user_id)
        logger.info("Registered user %s (%s)", user_id, role)
        return user, self._tokens.issue(user_id)

    def login(self, email: str, password: str) -> tuple[User, str]:
        user = self._users.get_by_email((email or "").strip().lower())
        if not user or not self._password_ok(user, password):
            raise AuthenticationError("Invalid email or password")
        return user, self._tokens.issue(user.user_id)

    def user_from_token(self, token: str) -> User:
        user_id = self._tokens.verify(token)
        user = self._users.get_by_id(user_id)
        if not user:
            raise AuthenticationError("The user belonging to this token no longer exists")
        return user

    @staticmethod
    def _password_ok(user: User, password: str) -> bool:
        try:
            return check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME'
            return False


class UserService:
    def __init__(self, users: UserRepository, otp: OtpStore, mailer: Mailer):
        self._users = users
        self._otp = otp
        self._mailer = mailer

    def get_user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def list_users(self, *, role: Optional[str] = None) -> Sequence[User]:
        if role:
            try:
                return self._users.list_users(role=Role(role))
            except ValueError:
                raise ValidationError("Invalid role value")
        return self._users.list_users()

    def update_profile(self, user_id: int, payload: dict, *, profile_picture: Optional[str] = None) -> User:
        user = self.get_user(user_id)
        fields = FieldErrors(payload)
        name = fields.string("name", label="Name", min_len=NAME_MIN_LENGTH, max_len=NAME_MAX_LENGTH)
        bio = fields.string("bio", label="Bio")
        fields.raise_if_any()

        self._users.update_profile(
            user.user_id,
            name=name or user.name,
            bio=bio or user.bio,
            profile_picture=profile_picture or user.profile_picture,
        )
        return self.get_user(user.user_id)

    def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        if not old_password or not new_password:
            raise ValidationError("Old password and new password are required")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        user = self.get_user(user_id)
        if not AuthService._password_ok(user, old_password):
            raise AuthenticationError("Current password is incorrect")
        self._users.set_password_hash(user.user_id, generate_password_hash(new_password))

    # --- email verification ---

    def send_verification_otp(self, user: User) -> None:
        if user.email_verified:
            raise InvalidStateError("Email is already verified")
        code = self._otp.issue(OtpPurpose.VERIFY_EMAIL, user.email)
        self._mailer.send(
            to=user.email,
            subject="Verify your email",
            body=f"Your verification code is {code}. It expires in {self._otp.ttl_seconds // 60} minutes.",
        )

    def verify_email(self, user: User, otp: str) -> None:
        if not otp:
            raise ValidationError("OTP is required")
        if not self._otp.verify(OtpPurpose.VERIFY_EMAIL, user.email, otp):
            raise ValidationError("Invalid or expired OTP")
        self._users.set_email_verified(user.user_id)

    # --- password reset ---

    def send_password_reset_otp(self, email: str) -> None:
        email = (email or "").strip().lower()
        if not email:
            raise ValidationError("Email is required")
        user = self._users.get_by_email(email)
        if not user:
            raise NotFoundError("User not found")
        code = self._otp.issue(OtpPurpose.PASSWORD_RESET, user.email)
        self._mailer.send(
            to=user.email,
            subject="Password reset code",
            body=f"Your password reset code is {code}. It expires in {self._otp.ttl_seconds // 60} minutes.",
        )

    def reset_password(self, email: str, otp: str, new_password: str) -> None:
        email = (email or "").strip().lower()
        if not email or not otp or not new_password:
            raise ValidationError("Email, OTP and new password are required")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        user = self._users.get_by_email(email)
        if not user:
            raise NotFoundError("User not found")
        if not self._otp.verify(OtpPurpose.PASSWORD_RESET, user.email, otp):
            raise ValidationError("Invalid or expired OTP")
        self._users.set_password_hash(user.user_id, generate_password_hash(new_password))
        logger.info("Password reset for user %s", user.user_id)
