from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from app.database import get_db
from app.models.user import User, UserRole
from app.core.security import require_role
from app.services import notification_service

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    message: str
    type: str
    is_read: bool
    created_at: datetime
    appointment_id: Optional[int] = None

current_patient = require_role(UserRole.PATIENT)

@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(current_patient)
):
    return notification_service.get_patient_notifications(db, current_user.id)

@router.get("/unread", response_model=List[NotificationResponse])
async def get_unread_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(current_patient)
):
    return notification_service.get_unread_notifications(db, current_user.id)

@router.put("/read-all")
async def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(current_patient)
):
    updated = notification_service.mark_all_as_read(db, current_user.id)
    return {"message": "All notifications marked as read", "updated": updated}

@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(current_patient)
):
    return notification_service.mark_as_read(db, notification_id, current_user.id)
