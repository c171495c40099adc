from __future__ import annotations

from typing import Any, Optional

from flask import jsonify


def ok(data: Any = None, *, status: int = 200, message: Optional[str] = None, count: Optional[int] = None):
    """JSON success envelope: {success, message?, count?, data?}."""
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if count is not None:
        body["count"] = count
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def fail(message: str, *, status: int, errors: Optional[list] = None, **extra: Any):
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return jsonify(body), status
