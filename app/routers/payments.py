from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from app.database import get_db
from app.deps import get_dispatcher
from app.models.user import User, UserRole
from app.models.payment import PaymentStatus
from app.core.security import require_role
from app.services import payment_service
from app.services.events import EventDispatcher

router = APIRouter(prefix="/api/payments", tags=["payments"])

class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_id: int
    amount: float
    order_id: str
    gateway_payment_id: Optional[str] = None
    status: PaymentStatus
    failure_reason: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None

class PaymentCompletion(BaseModel):
    order_id: str
    gateway_payment_id: Optional[str] = None
    success: bool = True
    failure_reason: Optional[str] = None

class RevenueResponse(BaseModel):
    total_revenue: float
    total_completed_payments: int
    average_consultation_fee: float
    recent_payments: List[PaymentResponse]

@router.post("/create-order/{appointment_id}", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment_order(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PATIENT))
):
    return payment_service.create_payment_order(db, appointment_id, current_user.id)

@router.post("/complete", response_model=PaymentResponse)
async def complete_payment(
    completion: PaymentCompletion,
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
    current_user: User = Depends(require_role(UserRole.PATIENT))
):
    # The gateway has already verified the payment; this records its outcome
    if not completion.success:
        return payment_service.fail_payment(
            db, completion.order_id, completion.failure_reason or "Payment failed", acting_patient_id=current_user.id
        )
    return payment_service.complete_payment(
        db, completion.order_id, completion.gateway_payment_id or "",
        dispatcher=dispatcher, acting_patient_id=current_user.id,
    )

@router.get("/doctor-revenue", response_model=RevenueResponse)
async def get_doctor_revenue(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DOCTOR))
):
    return payment_service.get_doctor_revenue(db, current_user.id)

@router.get("/total-revenue", response_model=RevenueResponse)
async def get_total_revenue(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.ADMIN))
):
    return payment_service.get_total_revenue(db)
