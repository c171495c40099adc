from dataclasses import replace
from types import SimpleNamespace

from flask import Flask
from flask_mail import Mail

from src.virtual_classroom.virtual_classroom.auth.mailer import FlaskMailMailer, LogMailer
from src.virtual_classroom.virtual_classroom.container import build_mailer
from src.virtual_classroom.virtual_classroom.main import create_app


def test_flask_mail_mailer_sends_plain_text_message():
    app = Flask(__name__)
    app.config.update(TESTING=True, MAIL_DEFAULT_SENDER="no-reply@classroom.local")
    mail = Mail()
    mailer = FlaskMailMailer(mail)
    mailer.init_app(app)

    with app.app_context(), mail.record_messages() as outbox:
        mailer.send(to="sam@example.com", subject="Verify your email", body="Your code is 123456")

    assert len(outbox) == 1
    assert outbox[0].recipients == ["sam@example.com"]
    assert outbox[0].sender == "no-reply@classroom.local"
    assert outbox[0].body == "Your code is 123456"


def test_build_mailer_logs_without_mail_server():
    assert isinstance(build_mailer(SimpleNamespace(MAIL_SERVER="")), LogMailer)
    assert isinstance(build_mailer(SimpleNamespace(MAIL_SERVER="smtp.example.com")), FlaskMailMailer)


def test_create_app_binds_flask_mail(container):
    mailer = FlaskMailMailer()
    app = create_app(container=replace(container, mailer=mailer))

    assert "mail" in app.extensions
    assert app.config["MAIL_DEFAULT_SENDER"] == "no-reply@classroom.local"
