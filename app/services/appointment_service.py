"""Appointment lifecycle engine.

Every write follows the same shape: validate against the directory, change
the row inside one transaction, commit, and only then hand the resulting
events to the dispatcher. Side effects never undo a committed change.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from app.config import Settings, get_settings
from app.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from app.core.logger import get_logger
from app.models.appointment import Appointment, AppointmentStatus, CANCELLED_BY_PATIENT
from app.schemas.appointment import AppointmentView
from app.schemas.dashboard import DashboardView
from app.services import notification_service, payment_service
from app.services.appointment_lifecycle import ensure_transition
from app.services.directory import find_doctor_by_id, find_patient_by_id
from app.services.events import (
    AppointmentBooked,
    AppointmentCancelled,
    AppointmentStatusChanged,
    EventDispatcher,
)
from app.utils.time import to_naive_utc, utcnow

logger = get_logger(__name__)

UPCOMING_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.APPROVED)


class AppointmentService:
    def __init__(self, db: Session, dispatcher: EventDispatcher, settings: Optional[Settings] = None):
        self.db = db
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()

    # Reads

    def get(self, appointment_id: int) -> AppointmentView:
        logger.info("Fetching appointment: %s", appointment_id)
        return AppointmentView.from_appointment(self._get_or_404(appointment_id))

    def list_for_patient(self, patient_id: int) -> List[AppointmentView]:
        logger.info("Fetching appointments for patient: %s", patient_id)
        appointments = self._with_parties().filter(
            Appointment.patient_id == patient_id
        ).order_by(Appointment.appointment_datetime.desc(), Appointment.id.desc()).all()
        return [AppointmentView.from_appointment(a) for a in appointments]

    def list_for_doctor(self, doctor_id: int) -> List[AppointmentView]:
        logger.info("Fetching appointments for doctor: %s", doctor_id)
        appointments = self._with_parties().filter(
            Appointment.doctor_id == doctor_id
        ).order_by(Appointment.appointment_datetime.desc(), Appointment.id.desc()).all()
        return [AppointmentView.from_appointment(a) for a in appointments]

    def get_patient_dashboard(self, patient_id: int) -> DashboardView:
        logger.info("Fetching dashboard for patient: %s", patient_id)
        patient = find_patient_by_id(self.db, patient_id)

        total = self.db.query(Appointment).filter(Appointment.patient_id == patient_id).count()
        # Still-open appointments that have not happened yet, soonest first
        upcoming = self._with_parties().filter(
            Appointment.patient_id == patient_id,
            Appointment.appointment_datetime > utcnow(),
            Appointment.status.in_(UPCOMING_STATUSES)
        ).order_by(Appointment.appointment_datetime.asc(), Appointment.id.asc()).all()

        return DashboardView(
            user_id=patient.id,
            user_name=patient.display_name,
            role=patient.role,
            statistics={
                "total_appointments": total,
                "upcoming_appointments": len(upcoming),
                "unread_notifications": notification_service.count_unread_notifications(self.db, patient_id),
            },
            recent_activity=[AppointmentView.from_appointment(a) for a in upcoming],
        )

    def get_doctor_dashboard(self, doctor_id: int) -> DashboardView:
        logger.info("Fetching dashboard for doctor: %s", doctor_id)
        doctor = find_doctor_by_id(self.db, doctor_id)

        total = self.db.query(Appointment).filter(Appointment.doctor_id == doctor_id).count()
        pending = self._with_parties().filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status == AppointmentStatus.PENDING
        ).order_by(Appointment.appointment_datetime.desc(), Appointment.id.desc()).all()

        return DashboardView(
            user_id=doctor.id,
            user_name=doctor.display_name,
            role=doctor.role,
            statistics={
                "total_appointments": total,
                "pending_appointments": len(pending),
            },
            recent_activity=[AppointmentView.from_appointment(a) for a in pending],
        )

    # Writes

    def book(
        self,
        patient_id: int,
        doctor_id: int,
        appointment_datetime: datetime,
        reason_for_visit: str,
        symptoms: Optional[str] = None,
    ) -> AppointmentView:
        logger.info("Booking appointment for patient: %s with doctor: %s", patient_id, doctor_id)

        scheduled_at = to_naive_utc(appointment_datetime)
        if scheduled_at <= utcnow():
            raise ValidationError("Appointment date and time must be in the future")
        if not reason_for_visit or not reason_for_visit.strip():
            raise ValidationError("Reason for visit is required")

        patient = find_patient_by_id(self.db, patient_id)
        doctor = find_doctor_by_id(self.db, doctor_id)
        if not doctor.is_accepting_appointments:
            raise InvalidStateError("Doctor is not currently accepting appointments")

        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            appointment_datetime=scheduled_at,
            reason_for_visit=reason_for_visit.strip(),
            symptoms=symptoms or None,
            status=AppointmentStatus.PENDING,
        )
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        view = AppointmentView.from_appointment(appointment)

        logger.info("Appointment booked successfully: %s", appointment.id)
        self.dispatcher.dispatch([
            AppointmentBooked(
                appointment_id=appointment.id,
                patient_id=patient.id,
                patient_name=patient.display_name,
                patient_email=patient.email,
                doctor_id=doctor.id,
                doctor_name=doctor.display_name,
                doctor_email=doctor.email,
                specialization=doctor.specialization,
                appointment_datetime=appointment.appointment_datetime,
                reason_for_visit=appointment.reason_for_visit,
            )
        ])
        return view

    def update_status(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        notes: Optional[str],
        acting_doctor_id: int,
    ) -> AppointmentView:
        try:
            new_status = AppointmentStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown appointment status: {new_status}")
        logger.info("Updating appointment %s status to %s", appointment_id, new_status.value)

        appointment = self._load_for_update(appointment_id)
        if appointment.doctor_id != acting_doctor_id:
            self.db.rollback()
            raise ForbiddenError("You can only update your own appointments")

        previous_status = appointment.status
        try:
            ensure_transition(previous_status, new_status)
            if new_status == AppointmentStatus.APPROVED and self.settings.REQUIRE_PAYMENT_FOR_APPROVAL:
                if not payment_service.is_payment_completed(self.db, appointment.id):
                    raise InvalidStateError("Appointment cannot be approved before payment is completed")
        except InvalidStateError:
            self.db.rollback()
            raise

        notes = notes.strip() if notes else None
        values = {}
        if notes:
            if new_status == AppointmentStatus.REJECTED:
                values[Appointment.rejection_reason] = notes
            else:
                values[Appointment.doctor_notes] = notes

        self._commit_transition(appointment, previous_status, new_status, values)
        view = AppointmentView.from_appointment(appointment)

        logger.info("Appointment %s status updated to %s", appointment.id, new_status.value)
        self.dispatcher.dispatch([
            AppointmentStatusChanged(
                appointment_id=appointment.id,
                patient_id=appointment.patient_id,
                patient_name=appointment.patient.display_name,
                patient_email=appointment.patient.email,
                doctor_name=appointment.doctor.display_name,
                appointment_datetime=appointment.appointment_datetime,
                previous_status=previous_status,
                new_status=new_status,
                notes=notes,
            )
        ])
        return view

    def cancel(self, appointment_id: int, acting_patient_id: int) -> AppointmentView:
        logger.info("Cancelling appointment: %s by patient: %s", appointment_id, acting_patient_id)

        appointment = self._load_for_update(appointment_id)
        if appointment.patient_id != acting_patient_id:
            self.db.rollback()
            raise ForbiddenError("You can only cancel your own appointments")

        previous_status = appointment.status
        try:
            if previous_status == AppointmentStatus.COMPLETED:
                raise InvalidStateError("Cannot cancel completed appointments")
            ensure_transition(previous_status, AppointmentStatus.CANCELLED)
        except InvalidStateError:
            self.db.rollback()
            raise

        self._commit_transition(
            appointment,
            previous_status,
            AppointmentStatus.CANCELLED,
            {Appointment.rejection_reason: CANCELLED_BY_PATIENT},
        )
        view = AppointmentView.from_appointment(appointment)

        logger.info("Appointment %s cancelled successfully", appointment.id)
        self.dispatcher.dispatch([
            AppointmentCancelled(
                appointment_id=appointment.id,
                patient_id=appointment.patient_id,
                doctor_id=appointment.doctor_id,
                previous_status=previous_status,
            )
        ])
        return view

    # Helpers

    def _with_parties(self):
        return self.db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.doctor),
        )

    def _get_or_404(self, appointment_id: int) -> Appointment:
        appointment = self._with_parties().filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError(f"Appointment not found with id: {appointment_id}")
        return appointment

    def _load_for_update(self, appointment_id: int) -> Appointment:
        # Row lock where the backend supports it; the guarded UPDATE below covers the rest
        appointment = self.db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).populate_existing().with_for_update().first()
        if not appointment:
            self.db.rollback()
            raise NotFoundError(f"Appointment not found with id: {appointment_id}")
        return appointment

    def _commit_transition(
        self,
        appointment: Appointment,
        expected_status: AppointmentStatus,
        new_status: AppointmentStatus,
        values: dict,
    ) -> None:
        values = dict(values)
        values[Appointment.status] = new_status
        values[Appointment.updated_at] = utcnow()

        updated = self.db.query(Appointment).filter(
            Appointment.id == appointment.id,
            Appointment.status == expected_status
        ).update(values, synchronize_session=False)
        if updated != 1:
            self.db.rollback()
            current = self.db.query(Appointment.status).filter(Appointment.id == appointment.id).scalar()
            current_label = current.value if current else "unknown"
            logger.warning(
                "Lost status race on appointment %s: expected %s, found %s",
                appointment.id, expected_status.value, current_label,
            )
            raise InvalidStateError(
                f"Appointment status changed to {current_label} by another request"
            )

        self.db.commit()
        self.db.refresh(appointment)
