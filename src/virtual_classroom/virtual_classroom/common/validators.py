from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Iterable, Optional

from ..core.exceptions import ValidationError
from .datetime_utils import parse_iso_datetime

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class FieldErrors:
    """Collects per-field problems and raises them together as one ValidationError."""

    def __init__(self, payload: Optional[dict] = None):
        self.payload = payload if isinstance(payload, dict) else {}
        self._errors: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self._errors.append({"field": field, "message": message})

    def raise_if_any(self) -> None:
        if self._errors:
            messages = ". ".join(e["message"] for e in self._errors)
            raise ValidationError(f"Invalid input data. {messages}", errors=list(self._errors))

    def string(
        self,
        field: str,
        *,
        required: bool = False,
        label: Optional[str] = None,
        min_len: Optional[int] = None,
        max_len: Optional[int] = None,
    ) -> Optional[str]:
        label = label or field
        raw = self.payload.get(field)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            if required:
                self.add(field, f"{label} is required")
            return None if raw is None else ""
        value = str(raw).strip()
        if min_len is not None and len(value) < min_len:
            self.add(field, f"{label} must be at least {min_len} characters")
        elif max_len is not None and len(value) > max_len:
            self.add(field, f"{label} cannot be more than {max_len} characters")
        return value

    def email(self, field: str = "email", *, required: bool = True) -> Optional[str]:
        value = self.string(field, required=required, label="Email")
        if value and not _EMAIL_RE.match(value):
            self.add(field, "Please provide a valid email address")
        return value.lower() if value else value

    def integer(self, field: str, *, required: bool = False, label: Optional[str] = None) -> Optional[int]:
        label = label or field
        raw = self.payload.get(field)
        if raw is None or raw == "":
            if required:
                self.add(field, f"{label} is required")
            return None
        if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
            self.add(field, f"Invalid {label} format")
            return None
        try:
            return int(raw)
        except (TypeError, ValueError, OverflowError):
            self.add(field, f"Invalid {label} format")
            return None

    def number(self, field: str, *, required: bool = False, minimum: Optional[float] = None, label: Optional[str] = None) -> Optional[float]:
        label = label or field
        raw = self.payload.get(field)
        if raw is None or raw == "":
            if required:
                self.add(field, f"{label} is required")
            return None
        if isinstance(raw, bool):
            self.add(field, f"{label} must be a number")
            return None
        try:
            value = float(raw)
        except (TypeError, ValueError):
            self.add(field, f"{label} must be a number")
            return None
        if not math.isfinite(value):
            self.add(field, f"{label} must be a number")
            return None
        if minimum is not None and value < minimum:
            self.add(field, f"{label} cannot be negative")
        return value

    def choice(self, field: str, choices: Iterable[str], *, required: bool = False, label: Optional[str] = None) -> Optional[str]:
        label = label or field
        raw = self.payload.get(field)
        if raw is None or raw == "":
            if required:
                self.add(field, f"{label} is required")
            return None
        if not isinstance(raw, str) or raw not in set(choices):
            self.add(field, f"Invalid {label} value")
            return None
        return raw

    def timestamp(self, field: str, *, required: bool = False, label: Optional[str] = None) -> Optional[datetime]:
        label = label or field
        raw = self.payload.get(field)
        if raw is None or raw == "":
            if required:
                self.add(field, f"{label} is required")
            return None
        try:
            return parse_iso_datetime(raw, label)
        except ValidationError as e:
            self.add(field, e.message)
            return None

    def boolean(self, field: str, *, label: Optional[str] = None) -> Optional[bool]:
        label = label or field
        raw = self.payload.get(field)
        if raw is None:
            return None
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str) and raw.lower() in {"true", "false", "1", "0"}:
            return raw.lower() in {"true", "1"}
        self.add(field, f"{label} must be a boolean value")
        return None


def as_dict(payload: Any) -> dict:
    return payload if isinstance(payload, dict) else {}
