from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from campus.core.config import settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates" / "email"


class EmailDeliveryError(Exception):
    pass


class EmailService:
    def __init__(self) -> None:
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, name: str, **context) -> tuple[str, str]:
        html = self.env.get_template(f"{name}.html").render(**context)
        text = self.env.get_template(f"{name}.txt").render(**context)
        return html, text

    def send(self, *, to_email: str, subject: str, html: str, text: str) -> None:
        if not settings.SMTP_HOST:
            logger.info("SMTP_HOST not configured, skipping delivery of %r to %s", subject, to_email)
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.SMTP_FROM
        msg["To"] = to_email
        msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))

        try:
            with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SEC) as server:
                if settings.SMTP_USE_TLS:
                    server.starttls()
                if settings.SMTP_USER:
                    server.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
                server.sendmail(settings.SMTP_FROM, [to_email], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"Failed to send email to {to_email}") from exc

        logger.info("Sent %r to %s", subject, to_email)

    def send_password_reset_email(self, *, email: str, first_name: str, reset_link: str) -> None:
        html, text = self.render(
            "password_reset",
            app_name=settings.APP_NAME,
            first_name=first_name,
            reset_link=reset_link,
            expires_minutes=settings.RESET_TOKEN_EXPIRE_MINUTES,
        )
        self.send(
            to_email=email,
            subject=f"Password Reset Request - {settings.APP_NAME}",
            html=html,
            text=text,
        )


def get_email_service() -> EmailService:
    return EmailService()
