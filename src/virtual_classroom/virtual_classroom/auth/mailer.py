from __future__ import annotations

import logging
from typing import Optional, Protocol

from flask import Flask
from flask_mail import Mail, Message

logger = logging.getLogger(__name__)

MAIL_SETTINGS = (
    "MAIL_SERVER",
    "MAIL_PORT",
    "MAIL_USE_TLS",
    "MAIL_USE_SSL",
    "MAIL_USERNAME",
    "MAIL_PASSWORD",
    "MAIL_DEFAULT_SENDER",
)


class Mailer(Protocol):
    def send(self, *, to: str, subject: str, body: str) -> None:
        raise NotImplementedError


class LogMailer(Mailer):
    """Development mailer: writes the message to the log instead of sending it."""

    def send(self, *, to: str, subject: str, body: str) -> None:
        logger.info("DEV MODE - email to %s | %s | %s", to, subject, body)


class FlaskMailMailer(Mailer):
    """Delivers through Flask-Mail using the app's MAIL_* config.

    Must be bound with `init_app` before the first send; sends run inside the
    request that triggered them, so the app context is always available.
    """

    def __init__(self, mail: Optional[Mail] = None):
        self._mail = mail or Mail()

    def init_app(self, app: Flask) -> None:
        self._mail.init_app(app)

    def send(self, *, to: str, subject: str, body: str) -> None:
        self._mail.send(Message(subject=subject, recipients=[to], body=body))
        logger.info("Email '%s' sent to %s", subject, to)
