from __future__ import annotations

from flask import Flask, request

from ..auth.guards import current_user, make_auth_required
from ..common.responses import ok
from ..common.validators import as_dict
from ..core.enums import Role
from ..container import Container
from .serializers import user_to_dict


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.auth_service)

    def _payload() -> dict:
        # profile updates may arrive as multipart (with a picture) or JSON
        if request.is_json:
            return as_dict(request.get_json(silent=True))
        return request.form.to_dict()

    @app.route("/api/users/register", methods=["POST"], endpoint="users_register")
    def register_user():
        user, token = container.auth_service.register(as_dict(request.get_json(silent=True)))
        return ok(user_to_dict(user, token=token), status=201)

    @app.route("/api/users/login", methods=["POST"], endpoint="users_login")
    def login():
        data = as_dict(request.get_json(silent=True))
        user, token = container.auth_service.login(str(data.get("email") or ""), str(data.get("password") or ""))
        return ok(user_to_dict(user, token=token))

    @app.route("/api/users/me", methods=["GET"], endpoint="users_me")
    @auth_required()
    def me():
        return ok(user_to_dict(current_user()))

    @app.route("/api/users/profile", methods=["GET"], endpoint="users_profile")
    @auth_required()
    def get_profile():
        return ok(user_to_dict(container.user_service.get_user(current_user().user_id)))

    @app.route("/api/users/profile", methods=["PUT"], endpoint="users_profile_update")
    @auth_required()
    def update_profile():
        picture = container.uploads.save_optional(request.files.get("profilePicture"), "profiles")
        user = container.user_service.update_profile(current_user().user_id, _payload(), profile_picture=picture)
        return ok(user_to_dict(user))

    @app.route("/api/users/change-password", methods=["PUT"], endpoint="users_change_password")
    @auth_required()
    def change_password():
        data = as_dict(request.get_json(silent=True))
        container.user_service.change_password(
            current_user().user_id,
            str(data.get("oldPassword") or ""),
            str(data.get("newPassword") or ""),
        )
        return ok(message="Password updated successfully")

    @app.route("/api/users/send-otp", methods=["POST"], endpoint="users_send_otp")
    @auth_required()
    def send_otp():
        container.user_service.send_verification_otp(current_user())
        return ok(message="OTP sent to your email")

    @app.route("/api/users/verify-email", methods=["POST"], endpoint="users_verify_email")
    @auth_required()
    def verify_email():
        data = as_dict(request.get_json(silent=True))
        container.user_service.verify_email(current_user(), str(data.get("otp") or ""))
        return ok(message="Email verified successfully")

    @app.route("/api/users/password-reset/send-otp", methods=["POST"], endpoint="users_reset_send_otp")
    def send_reset_otp():
        data = as_dict(request.get_json(silent=True))
        container.user_service.send_password_reset_otp(str(data.get("email") or ""))
        return ok(message="OTP sent to your email")

    @app.route("/api/users/password-reset/verify", methods=["POST"], endpoint="users_reset_verify")
    def reset_password():
        data = as_dict(request.get_json(silent=True))
        container.user_service.reset_password(
            str(data.get("email") or ""),
            str(data.get("otp") or ""),
            str(data.get("newPassword") or ""),
        )
        return ok(message="Password reset successfully")

    @app.route("/api/users", methods=["GET"], endpoint="users_list")
    @auth_required(Role.ADMIN)
    def list_users():
        users = container.user_service.list_users(role=request.args.get("role"))
        return ok([user_to_dict(u) for u in users], count=len(users))

    @app.route("/api/users/<int:user_id>", methods=["GET"], endpoint="users_get")
    @auth_required()
    def get_user(user_id: int):
        return ok(user_to_dict(container.user_service.get_user(user_id)))
