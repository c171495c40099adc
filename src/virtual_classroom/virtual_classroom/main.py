from __future__ import annotations

import importlib
import logging
import traceback
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, send_from_directory
from werkzeug.exceptions import HTTPException

from config import get_settings_module

from .assignments.controller import register as register_assignments
from .attendance.controller import register as register_attendance
from .auth.mailer import MAIL_SETTINGS, FlaskMailMailer
from .common.responses import fail
from .container import Container, build_container
from .core.exceptions import DomainError, ValidationError
from .courses.controller import register as register_courses
from .database.bootstrap import apply_schema, ensure_demo_users, list_tables
from .sessions.controller import register as register_sessions
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        errors = e.errors if isinstance(e, ValidationError) else None
        return fail(e.message or "Request failed", status=e.status_code, errors=errors)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error: %s", e)
        if app.config.get("EXPOSE_ERROR_DETAILS"):
            return fail("Something went wrong", status=500, error=str(e), stack=traceback.format_exc())
        return fail("Something went wrong", status=500)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    _configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["EXPOSE_ERROR_DETAILS"] = bool(getattr(settings, "EXPOSE_ERROR_DETAILS", False))
    app.config["MAX_CONTENT_LENGTH"] = int(getattr(settings, "MAX_CONTENT_LENGTH", 10 * 1024 * 1024))
    for key in MAIL_SETTINGS:
        if hasattr(settings, key):
            app.config[key] = getattr(settings, key)

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            ensure_demo_users(db_config)
            logger.info("Demo accounts ready")

        container = build_container(db_config=db_config, settings=settings)

    if isinstance(container.mailer, FlaskMailMailer):
        container.mailer.init_app(app)

    register_error_handlers(app)

    register_users(app, container)
    register_courses(app, container)
    register_sessions(app, container)
    register_attendance(app, container)
    register_assignments(app, container)

    upload_root = container.uploads.root.resolve()

    @app.route("/uploads/<path:filename>", methods=["GET"], endpoint="uploads")
    def uploaded_file(filename: str):
        return send_from_directory(upload_root, filename)

    return app


