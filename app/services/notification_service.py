from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.notification import Notification

APPOINTMENT = "APPOINTMENT"
PAYMENT = "PAYMENT"


def create_notification(
    db: Session,
    patient_id: int,
    title: str,
    message: str,
    type: str,
    appointment_id: Optional[int] = None,
) -> Notification:
    notification = Notification(
        patient_id=patient_id,
        title=title,
        message=message,
        type=type,
        appointment_id=appointment_id,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def get_patient_notifications(db: Session, patient_id: int) -> List[Notification]:
    return db.query(Notification).filter(
        Notification.patient_id == patient_id
    ).order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def get_unread_notifications(db: Session, patient_id: int) -> List[Notification]:
    return db.query(Notification).filter(
        Notification.patient_id == patient_id,
        Notification.is_read == False  # noqa: E712
    ).order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def count_unread_notifications(db: Session, patient_id: int) -> int:
    return db.query(Notification).filter(
        Notification.patient_id == patient_id,
        Notification.is_read == False  # noqa: E712
    ).count()


def mark_as_read(db: Session, notification_id: int, patient_id: int) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.patient_id == patient_id
    ).first()
    if not notification:
        raise NotFoundError("Notification not found")

    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_as_read(db: Session, patient_id: int) -> int:
    updated = db.query(Notification).filter(
        Notification.patient_id == patient_id,
        Notification.is_read == False  # noqa: E712
    ).update({"is_read": True}, synchronize_session=False)
    db.commit()
    return updated
