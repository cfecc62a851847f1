"""
funeral_services.mailer -- SMTP delivery of appointment emails.

Implements ``EmailPort`` with the standard library ``smtplib``.  Bodies are
plain text; the connection is opened per message.
"""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from email.utils import make_msgid

from funeral_kernel.exceptions import NetworkError
from funeral_kernel.logging_config import get_logger
from funeral_services.ports import AppointmentEmail, EmailPort, EmailResult

logger = get_logger("services.mailer")

_TIME_FORMAT = "%I:%M %p"


def format_time_range(message: AppointmentEmail) -> str:
    return (
        f"{message.start_time.strftime(_TIME_FORMAT)} - "
        f"{message.end_time.strftime(_TIME_FORMAT)}"
    )


class SmtpEmailAdapter(EmailPort):

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
        funeral_home_name: str = "",
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self.funeral_home_name = funeral_home_name

    def send_appointment_confirmation(self, message: AppointmentEmail) -> EmailResult:
        body = (
            f"Dear {message.recipient_name},\n\n"
            f"Your pre-planning appointment with {message.director_name} is "
            f"scheduled for {message.start_time:%A, %B %d, %Y}, "
            f"{format_time_range(message)}.\n\n"
            f"{self.funeral_home_name}\n"
        )
        return self._send(message.recipient_email, "Pre-planning appointment confirmation", body)

    def send_director_notification(self, message: AppointmentEmail) -> EmailResult:
        body = (
            f"{message.director_name},\n\n"
            f"Appointment ({message.notification_type}) with the {message.family_name} "
            f"family on {message.start_time:%A, %B %d, %Y}, {format_time_range(message)}.\n"
            f"Phone: {message.family_phone}\n"
        )
        if message.notes:
            body += f"Notes: {message.notes}\n"
        return self._send(message.recipient_email, "Pre-planning appointment", body)

    def send_appointment_reminder(self, message: AppointmentEmail) -> EmailResult:
        body = (
            f"Dear {message.recipient_name},\n\n"
            f"This is a reminder of your appointment with {message.director_name} on "
            f"{message.start_time:%A, %B %d, %Y}, {format_time_range(message)}.\n\n"
            f"{self.funeral_home_name}\n"
        )
        return self._send(message.recipient_email, "Appointment reminder", body)

    def _send(self, recipient: str, subject: str, body: str) -> EmailResult:
        try:
            msg = EmailMessage()
            msg["From"] = self.sender
            msg["To"] = recipient
            msg["Subject"] = subject
            msg["Message-ID"] = make_msgid()
            msg.set_content(body)
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            logger.error("email_send_failed", extra={
                "subject": subject,
                "error": str(exc),
            })
            raise NetworkError(f"Email delivery failed: {exc}") from exc
        logger.info("email_sent", extra={"subject": subject})
        return EmailResult(status="sent", message_id=msg["Message-ID"])
