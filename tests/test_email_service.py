"""Tests for email rendering and delivery."""

from datetime import datetime

from app.config import Settings
from app.services.email_service import EmailService, SmtpEmailSender


class TestSmtpEmailSender:
    def test_without_smtp_host_messages_are_dropped(self) -> None:
        sender = SmtpEmailSender(Settings(_env_file=None, SMTP_HOST=None))
        assert sender.send("jane@example.com", "Hello", "<p>hi</p>") is False


class TestEmailService:
    def test_delivery_errors_are_swallowed(self, email_sender) -> None:
        email_sender.fail = True
        queued = []
        service = EmailService(email_sender, submit=lambda func, **kw: queued.append((func, kw)))

        service.send_feedback_request("jane@example.com", "Jane", "Dr. House", 7)
        assert len(queued) == 1

        func, kwargs = queued[0]
        func(**kwargs)  # must not raise
        assert email_sender.sent == []

    def test_submit_defers_sending(self, email_sender) -> None:
        queued = []
        service = EmailService(email_sender, submit=lambda func, **kw: queued.append((func, kw)),
                               frontend_url="http://frontend.test/")

        service.send_appointment_confirmation(
            "jane@example.com", "Jane", "Dr. House", datetime(2030, 5, 1, 9, 30), "Cardiology"
        )
        assert email_sender.sent == []

        func, kwargs = queued[0]
        func(**kwargs)
        mail = email_sender.sent[0]
        assert mail["subject"] == "Appointment Confirmation"
        assert "2030-05-01 09:30" in mail["html"]
        assert "Cardiology" in mail["html"]
        assert "http://frontend.test/patient/dashboard" in mail["html"]

    def test_user_text_is_escaped(self, email_service, email_sender) -> None:
        email_service.send_doctor_new_booking(
            "house@example.com", "House", "<script>x</script>", datetime(2030, 5, 1, 9, 30), "pain & fever"
        )
        html = email_sender.sent[0]["html"]
        assert "<script>" not in html
        assert "pain &amp; fever" in html
