"""Best-effort transactional email.

Messages are rendered here and handed to a background executor; the caller
never waits for delivery and delivery errors are only logged.
"""
import smtplib
import ssl
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, Optional

from app.config import Settings, get_settings
from app.core.scheduler import run_in_background
from app.core.logger import get_logger
from app.email_templates import (
    appointment_confirmation_template,
    appointment_status_template,
    doctor_new_booking_template,
    feedback_request_template,
    payment_confirmation_template,
)

logger = get_logger(__name__)


class SmtpEmailSender:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def send(self, to: str, subject: str, html_content: str) -> bool:
        settings = self.settings
        if not settings.SMTP_HOST:
            logger.info("SMTP not configured, dropping email '%s' to %s", subject, to)
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.EMAIL_FROM_ADDRESS
        msg["To"] = to
        msg.attach(MIMEText(html_content, "html"))

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            if settings.SMTP_USE_TLS:
                server.starttls(context=ssl.create_default_context())
            if settings.SMTP_USERNAME:
                server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
            server.sendmail(settings.EMAIL_FROM_ADDRESS, [to], msg.as_string())
        logger.info("Email '%s' sent to %s", subject, to)
        return True


def _format_datetime(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


class EmailService:
    def __init__(self, sender, submit: Optional[Callable] = None, frontend_url: Optional[str] = None):
        self.sender = sender
        self.submit = submit or run_in_background
        self.frontend_url = (frontend_url or get_settings().FRONTEND_URL).rstrip("/")

    def _deliver(self, to: str, subject: str, html_content: str) -> None:
        try:
            self.sender.send(to, subject, html_content)
        except Exception:
            logger.exception("Failed to send email '%s' to %s", subject, to)

    def _queue(self, to: str, subject: str, html_content: str) -> None:
        logger.info("Queueing email '%s' to %s", subject, to)
        self.submit(self._deliver, to=to, subject=subject, html_content=html_content)

    def send_appointment_confirmation(self, to_email, patient_name, doctor_name, appointment_datetime, specialization=None):
        html = appointment_confirmation_template(
            patient_name,
            doctor_name,
            _format_datetime(appointment_datetime),
            specialization,
            f"{self.frontend_url}/patient/dashboard",
        )
        self._queue(to_email, "Appointment Confirmation", html)

    def send_doctor_new_booking(self, to_email, doctor_name, patient_name, appointment_datetime, reason_for_visit):
        html = doctor_new_booking_template(
            doctor_name,
            patient_name,
            _format_datetime(appointment_datetime),
            reason_for_visit,
            f"{self.frontend_url}/doctor/dashboard",
        )
        self._queue(to_email, "New Appointment Booking", html)

    def send_appointment_status(self, to_email, patient_name, status, doctor_name, appointment_datetime, notes=None):
        html = appointment_status_template(
            patient_name, status, doctor_name, _format_datetime(appointment_datetime), notes
        )
        self._queue(to_email, f"Appointment {status}", html)

    def send_feedback_request(self, to_email, patient_name, doctor_name, appointment_id):
        html = feedback_request_template(
            patient_name,
            doctor_name,
            f"{self.frontend_url}/patient/feedback?appointmentId={appointment_id}",
        )
        self._queue(to_email, "How was your appointment?", html)

    def send_payment_confirmation(self, to_email, patient_name, doctor_name, amount, appointment_datetime):
        html = payment_confirmation_template(
            patient_name, doctor_name, amount, _format_datetime(appointment_datetime)
        )
        self._queue(to_email, "Payment Confirmation", html)
