"""Default post-commit handlers: patient inbox entries and emails."""
from app.core.logger import get_logger
from app.models.appointment import AppointmentStatus
from app.services import notification_service
from app.services.email_service import EmailService
from app.services.events import (
    AppointmentBooked,
    AppointmentStatusChanged,
    EventDispatcher,
    PaymentCompleted,
)

logger = get_logger(__name__)

STATUS_MESSAGES = {
    AppointmentStatus.APPROVED: "Your appointment with {doctor} has been approved.",
    AppointmentStatus.REJECTED: "Your appointment with {doctor} has been rejected.",
    AppointmentStatus.COMPLETED: "Your appointment with {doctor} has been completed. Please leave feedback!",
    AppointmentStatus.CANCELLED: "Your appointment with {doctor} has been cancelled.",
}


def status_message(status: AppointmentStatus, doctor_name: str) -> str:
    template = STATUS_MESSAGES.get(
        status, "Your appointment status with {doctor} has been updated to {status}."
    )
    return template.format(doctor=doctor_name, status=status.value)


def _notify(session_factory, **fields):
    db = session_factory()
    try:
        notification_service.create_notification(db, **fields)
    finally:
        db.close()


def register_default_handlers(dispatcher: EventDispatcher, session_factory, email_service: EmailService) -> EventDispatcher:
    def notify_patient_booked(event: AppointmentBooked):
        _notify(
            session_factory,
            patient_id=event.patient_id,
            title="Appointment Booked",
            message=(
                f"Your appointment with {event.doctor_name} has been booked successfully "
                "and is pending approval."
            ),
            type=notification_service.APPOINTMENT,
            appointment_id=event.appointment_id,
        )

    def email_patient_booked(event: AppointmentBooked):
        email_service.send_appointment_confirmation(
            event.patient_email,
            event.patient_name,
            event.doctor_name,
            event.appointment_datetime,
            event.specialization,
        )

    def email_doctor_booked(event: AppointmentBooked):
        email_service.send_doctor_new_booking(
            event.doctor_email,
            event.doctor_name,
            event.patient_name,
            event.appointment_datetime,
            event.reason_for_visit,
        )

    def notify_patient_status(event: AppointmentStatusChanged):
        _notify(
            session_factory,
            patient_id=event.patient_id,
            title="Appointment Status Updated",
            message=status_message(event.new_status, event.doctor_name),
            type=notification_service.APPOINTMENT,
            appointment_id=event.appointment_id,
        )

    def email_patient_status(event: AppointmentStatusChanged):
        email_service.send_appointment_status(
            event.patient_email,
            event.patient_name,
            event.new_status.value,
            event.doctor_name,
            event.appointment_datetime,
            event.notes,
        )

    def email_feedback_request(event: AppointmentStatusChanged):
        if event.new_status != AppointmentStatus.COMPLETED:
            return
        email_service.send_feedback_request(
            event.patient_email,
            event.patient_name,
            event.doctor_name,
            event.appointment_id,
        )

    def email_payment_confirmation(event: PaymentCompleted):
        email_service.send_payment_confirmation(
            event.patient_email,
            event.patient_name,
            event.doctor_name,
            event.amount,
            event.appointment_datetime,
        )

    dispatcher.subscribe(AppointmentBooked, notify_patient_booked)
    dispatcher.subscribe(AppointmentBooked, email_patient_booked)
    dispatcher.subscribe(AppointmentBooked, email_doctor_booked)
    dispatcher.subscribe(AppointmentStatusChanged, notify_patient_status)
    dispatcher.subscribe(AppointmentStatusChanged, email_patient_status)
    dispatcher.subscribe(AppointmentStatusChanged, email_feedback_request)
    dispatcher.subscribe(PaymentCompleted, email_payment_confirmation)
    logger.debug("Registered default side-effect handlers")
    return dispatcher


def build_dispatcher(session_factory, email_service: EmailService) -> EventDispatcher:
    return register_default_handlers(EventDispatcher(), session_factory, email_service)
