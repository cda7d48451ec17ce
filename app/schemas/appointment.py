from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.models.appointment import Appointment, AppointmentStatus


class AppointmentView(BaseModel):
    """Appointment with patient/doctor display fields resolved."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    patient_name: str
    doctor_id: int
    doctor_name: str
    doctor_specialization: Optional[str] = None
    appointment_datetime: datetime
    reason_for_visit: str
    symptoms: Optional[str] = None
    status: AppointmentStatus
    doctor_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentView":
        return cls(
            id=appointment.id,
            patient_id=appointment.patient_id,
            patient_name=appointment.patient.display_name,
            doctor_id=appointment.doctor_id,
            doctor_name=appointment.doctor.display_name,
            doctor_specialization=appointment.doctor.specialization,
            appointment_datetime=appointment.appointment_datetime,
            reason_for_visit=appointment.reason_for_visit,
            symptoms=appointment.symptoms,
            status=appointment.status,
            doctor_notes=appointment.doctor_notes,
            rejection_reason=appointment.rejection_reason,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )
