"""Outbound email over SMTP.

Templates are small HTML snippets rendered with `str.format_map`. When
SMTP is not configured, `send_template` logs the message it would have
sent and returns False instead of raising, so local development and tests
run without a mail server. Transport failures do raise, which lets the
outbox dispatcher retry them.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, Mapping, Tuple

from ..config import Settings

logger = logging.getLogger("lms.mailer")

TEMPLATES: Dict[str, Tuple[str, str]] = {
    "verify-email": (
        "Verify Your Email",
        "<h1>Welcome, {name}!</h1>"
        "<p>Please confirm your address by opening "
        "<a href=\"{verification_link}\">{verification_link}</a>.</p>",
    ),
    "course-approved": (
        "Your course has been approved",
        "<p>Hello {name},</p><p>Your course <strong>{course_title}</strong> was approved "
        "and is now published.</p>",
    ),
    "course-rejected": (
        "Your course needs changes",
        "<p>Hello {name},</p><p>Your course <strong>{course_title}</strong> was not approved.</p>"
        "<p>Reason: {reason}</p><p>You can update it and resubmit for review.</p>",
    ),
    "assignment-graded": (
        "Your assignment has been graded",
        "<p>Hello {name},</p><p>Your submission for <strong>{assignment_title}</strong> "
        "received {score} / {max_score}.</p>",
    ),
}


class _Blank(dict):
    def __missing__(self, key):
        return ""


def render(template: str, context: Mapping) -> Tuple[str, str]:
    """Return (subject, html) for a named template."""
    try:
        subject, body = TEMPLATES[template]
    except KeyError:
        raise ValueError(f"unknown email template: {template}")
    return subject, body.format_map(_Blank(context))


class Mailer:
    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.starttls = settings.SMTP_STARTTLS
        self.sender = settings.MAIL_FROM

    @property
    def configured(self) -> bool:
        return bool(self.host)

    def send(self, to: str, subject: str, html_body: str) -> bool:
        if not self.configured:
            logger.warning("Email not configured; skipping message to %s: %s", to, subject)
            return False
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))
        with smtplib.SMTP(self.host, self.port, timeout=30) as server:
            if self.starttls:
                server.starttls()
            if self.user:
                server.login(self.user, self.password)
            server.send_message(msg)
        logger.info("Email sent to %s: %s", to, subject)
        return True

    def send_template(self, to: str, template: str, context: Mapping) -> bool:
        subject, html_body = render(template, context)
        return self.send(to, subject, html_body)
