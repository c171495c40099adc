from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Iterable, Optional

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"
KINDS = ("profiles", "courses", "assignments", "submissions")

ALLOWED_MIME_TYPES = (
    "image/jpeg",
    "image/png",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
)


class UploadStore:
    """Saves uploaded files under <root>/<kind>/ and hands back their public URL."""

    def __init__(self, root: str | Path, allowed_types: Iterable[str] = ALLOWED_MIME_TYPES):
        self._root = Path(root)
        self._allowed_types = tuple(allowed_types)

    @property
    def root(self) -> Path:
        return self._root

    def save(self, file: FileStorage, kind: str) -> str:
        if kind not in KINDS:
            raise ValueError(f"Unknown upload kind: {kind}")
        if file is None or not file.filename:
            raise ValidationError("No file uploaded")
        if file.mimetype not in self._allowed_types:
            raise ValidationError(f"File type not allowed. Allowed types: {', '.join(self._allowed_types)}")

        name = secure_filename(file.filename) or "file"
        stored = f"{uuid.uuid4().hex}-{name}"
        target_dir = self._root / kind
        target_dir.mkdir(parents=True, exist_ok=True)
        file.save(str(target_dir / stored))
        logger.info("Stored upload %s/%s", kind, stored)
        return f"{UPLOAD_URL_PREFIX}/{kind}/{stored}"

    def save_many(self, files: Iterable[FileStorage], kind: str) -> list[str]:
        return [self.save(f, kind) for f in files if f is not None and f.filename]

    def save_optional(self, file: Optional[FileStorage], kind: str) -> Optional[str]:
        if file is None or not file.filename:
            return None
        return self.save(file, kind)
