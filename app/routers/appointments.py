from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from app.models.user import User, UserRole
from app.models.appointment import AppointmentStatus
from app.schemas.appointment import AppointmentView
from app.services.appointment_service import AppointmentService
from app.core.security import get_current_active_user, require_role
from app.deps import get_appointment_service
from app.utils.time import to_naive_utc, utcnow

router = APIRouter(prefix="/api/appointments", tags=["appointments"])

class AppointmentCreate(BaseModel):
    doctor_id: int
    appointment_datetime: datetime
    reason_for_visit: str = Field(..., min_length=1, max_length=1000)
    symptoms: Optional[str] = Field(None, max_length=2000)

    @field_validator("appointment_datetime")
    @classmethod
    def must_be_in_future(cls, value: datetime) -> datetime:
        if to_naive_utc(value) <= utcnow():
            raise ValueError("Appointment date and time must be in the future")
        return value

class StatusUpdate(BaseModel):
    status: AppointmentStatus
    notes: Optional[str] = Field(None, max_length=2000)

@router.post("", response_model=AppointmentView, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    appointment: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
    current_user: User = Depends(require_role(UserRole.PATIENT))
):
    return service.book(
        patient_id=current_user.id,
        doctor_id=appointment.doctor_id,
        appointment_datetime=appointment.appointment_datetime,
        reason_for_visit=appointment.reason_for_visit,
        symptoms=appointment.symptoms,
    )

@router.get("/me", response_model=List[AppointmentView])
async def get_my_appointments(
    service: AppointmentService = Depends(get_appointment_service),
    current_user: User = Depends(require_role(UserRole.PATIENT, UserRole.DOCTOR))
):
    if current_user.is_doctor:
        return service.list_for_doctor(current_user.id)
    return service.list_for_patient(current_user.id)

@router.get("/doctor/{doctor_id}", response_model=List[AppointmentView])
async def get_doctor_appointments(
    doctor_id: int,
    service: AppointmentService = Depends(get_appointment_service),
    current_user: User = Depends(get_current_active_user)
):
    # Verify the current user is the doctor
    if current_user.id != doctor_id or not current_user.is_doctor:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view these appointments"
        )
    return service.list_for_doctor(doctor_id)

@router.get("/patient/{patient_id}", response_model=List[AppointmentView])
async def get_patient_appointments(
    patient_id: int,
    service: AppointmentService = Depends(get_appointment_service),
    current_user: User = Depends(get_current_active_user)
):
    # Verify the current user is the patient
    if current_user.id != patient_id or not current_user.is_patient:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view these appointments"
        )
    return service.list_for_patient(patient_id)

@router.get("/{appointment_id}", response_model=AppointmentView)
async def get_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
    current_user: User = Depends(get_current_active_user)
):
    appointment = service.get(appointment_id)

    # Admins see everything; otherwise only the doctor or the patient
    if current_user.role != UserRole.ADMIN and current_user.id not in [appointment.doctor_id, appointment.patient_id]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view this appointment"
        )
    return appointment

@router.put("/{appointment_id}/status", response_model=AppointmentView)
async def update_appointment_status(
    appointment_id: int,
    update: StatusUpdate,
    service: AppointmentService = Depends(get_appointment_service),
    current_user: User = Depends(require_role(UserRole.DOCTOR))
):
    return service.update_status(
        appointment_id,
        update.status,
        update.notes,
        acting_doctor_id=current_user.id,
    )

@router.delete("/{appointment_id}", response_model=AppointmentView)
async def cancel_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
    current_user: User = Depends(require_role(UserRole.PATIENT))
):
    return service.cancel(appointment_id, acting_patient_id=current_user.id)
