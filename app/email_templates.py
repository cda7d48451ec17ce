"""HTML bodies for the transactional emails sent by the clinic."""
from html import escape

THEME = {
    "primary": "#667eea",
    "success": "#43e97b",
    "danger": "#ff6b6b",
    "muted": "#6c757d",
}

STATUS_COLORS = {
    "APPROVED": THEME["success"],
    "COMPLETED": THEME["primary"],
    "REJECTED": THEME["danger"],
    "CANCELLED": THEME["danger"],
}


def _layout(title: str, body: str, color: str = THEME["primary"]) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="font-family: Arial, sans-serif; background-color: #f5f7fa; padding: 20px; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; background-color: #fff; border-radius: 12px; overflow: hidden;">
    <div style="background-color: {color}; color: #fff; padding: 30px; text-align: center;">
      <h1>{escape(title)}</h1>
    </div>
    <div style="padding: 30px;">
      {body}
    </div>
    <div style="padding: 20px; text-align: center; font-size: 14px; color: {THEME['muted']};">
      This is an automated message from your clinic. Please do not reply.
    </div>
  </div>
</body>
</html>"""


def _details(rows) -> str:
    items = "".join(
        f"<p><strong>{escape(label)}:</strong> {escape(str(value))}</p>" for label, value in rows
    )
    return f'<div style="background-color: #f8f9fa; padding: 20px; border-radius: 8px;">{items}</div>'


def _button(link: str, label: str) -> str:
    return (
        f'<p style="text-align: center;"><a href="{escape(link)}" '
        f'style="background-color: {THEME["primary"]}; color: #fff; padding: 12px 24px; '
        f'border-radius: 6px; text-decoration: none;">{escape(label)}</a></p>'
    )


def appointment_confirmation_template(patient_name, doctor_name, appointment_datetime, specialization, dashboard_link):
    body = (
        f"<h2>Hello {escape(patient_name)},</h2>"
        "<p>Your appointment has been booked and is pending approval by the doctor.</p>"
        + _details([
            ("Doctor", doctor_name),
            ("Specialization", specialization or "General Medicine"),
            ("Date & Time", appointment_datetime),
        ])
        + _button(dashboard_link, "View Dashboard")
    )
    return _layout("Appointment Booked", body)


def doctor_new_booking_template(doctor_name, patient_name, appointment_datetime, reason_for_visit, dashboard_link):
    body = (
        f"<h2>Hello Dr. {escape(doctor_name)},</h2>"
        "<p>A patient has booked a new appointment with you.</p>"
        + _details([
            ("Patient", patient_name),
            ("Date & Time", appointment_datetime),
            ("Reason for visit", reason_for_visit),
        ])
        + _button(dashboard_link, "Review Appointment")
    )
    return _layout("New Appointment Request", body)


def appointment_status_template(patient_name, status, doctor_name, appointment_datetime, notes=None):
    rows = [("Doctor", doctor_name), ("Date & Time", appointment_datetime), ("Status", status)]
    if notes:
        rows.append(("Notes", notes))
    body = (
        f"<h2>Hello {escape(patient_name)},</h2>"
        "<p>Your appointment status has been updated.</p>"
        + _details(rows)
    )
    return _layout(f"Appointment {status.title()}", body, STATUS_COLORS.get(status, THEME["primary"]))


def feedback_request_template(patient_name, doctor_name, feedback_link):
    body = (
        f"<h2>Hello {escape(patient_name)},</h2>"
        f"<p>Thank you for visiting {escape(doctor_name)}. "
        "We would love to hear about your experience.</p>"
        + _button(feedback_link, "Leave Feedback")
    )
    return _layout("How was your visit?", body)


def payment_confirmation_template(patient_name, doctor_name, amount, appointment_datetime):
    body = (
        f"<h2>Hello {escape(patient_name)},</h2>"
        "<p>We have received your payment.</p>"
        + _details([
            ("Doctor", doctor_name),
            ("Amount", f"{amount:.2f}"),
            ("Date & Time", appointment_datetime),
        ])
    )
    return _layout("Payment Received", body, THEME["success"])
