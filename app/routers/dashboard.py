from fastapi import APIRouter, Depends
from app.models.user import User, UserRole
from app.schemas.dashboard import DashboardView
from app.services.appointment_service import AppointmentService
from app.core.security import require_role
from app.deps import get_appointment_service

router = APIRouter(prefix="/api", tags=["dashboard"])

@router.get("/patients/dashboard", response_model=DashboardView)
async def get_patient_dashboard(
    service: AppointmentService = Depends(get_appointment_service),
    current_user: User = Depends(require_role(UserRole.PATIENT))
):
    return service.get_patient_dashboard(current_user.id)

@router.get("/doctors/dashboard", response_model=DashboardView)
async def get_doctor_dashboard(
    service: AppointmentService = Depends(get_appointment_service),
    current_user: User = Depends(require_role(UserRole.DOCTOR))
):
    return service.get_doctor_dashboard(current_user.id)
