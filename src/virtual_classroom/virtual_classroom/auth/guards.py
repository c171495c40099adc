from __future__ import annotations

from functools import wraps

from flask import g, request

from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..users.model import User
from .tokens import TokenService


def make_auth_required(auth_service):
    """Build the `auth_required(*roles)` decorator bound to one AuthService.

    The decorated view finds the caller on `flask.g.current_user`.
    """

    def auth_required(*roles: Role):
        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                token = TokenService.from_header(request.headers.get("Authorization"))
                user = auth_service.user_from_token(token)
                if roles and user.role not in roles:
                    raise AuthorizationError(f"User role {user.role.value} is not authorized to access this resource")
                g.current_user = user
                return view(*args, **kwargs)

            return wrapper

        return decorator

    return auth_required


def current_user() -> User:
    return g.current_user
