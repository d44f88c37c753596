"""
Outbound email backends.

- BrevoMailer: Brevo transactional email HTTP API (httpx)
- SmtpMailer: plain SMTP with STARTTLS
- ConsoleMailer: logs the message instead of sending it (development)

All of them raise on failure; swallowing is the Notifier's job.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

import httpx

from unihub.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html: str


class BrevoMailer:
    def __init__(self, settings: Settings):
        if not settings.brevo_api_key:
            raise RuntimeError("BREVO_API_KEY unset for brevo mail backend")
        self.url = settings.brevo_api_url
        self.api_key = settings.brevo_api_key
        self.sender = {"name": settings.mail_sender_name, "email": settings.mail_sender_email}
        self.timeout = settings.mail_timeout_sec

    def send(self, email: OutgoingEmail) -> None:
        payload = {
            "sender": self.sender,
            "to": [{"email": email.to}],
            "subject": email.subject,
            "htmlContent": email.html,
        }
        headers = {"Content-Type": "application/json", "api-key": self.api_key}
        resp = httpx.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        resp.raise_for_status()


class SmtpMailer:
    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.sender = f"{settings.mail_sender_name} <{settings.mail_sender_email}>"
        self.timeout = settings.mail_timeout_sec

    def send(self, email: OutgoingEmail) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = email.to
        msg["Subject"] = email.subject
        msg.set_content("This message requires an HTML capable email client.")
        msg.add_alternative(email.html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(msg)


class ConsoleMailer:
    def send(self, email: OutgoingEmail) -> None:
        logger.info("Email to %s: %s", email.to, email.subject)
        logger.debug("Email body:\n%s", email.html)


def build_mailer(settings: Settings):
    backend = settings.mail_backend.lower()
    if backend == "brevo":
        return BrevoMailer(settings)
    if backend == "smtp":
        return SmtpMailer(settings)
    if backend == "console":
        return ConsoleMailer()
    raise RuntimeError(f"Unknown mail backend '{settings.mail_backend}'")
