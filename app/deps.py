from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.database import SessionLocal, get_db
from app.services.appointment_service import AppointmentService
from app.services.email_service import EmailService, SmtpEmailSender
from app.services.events import EventDispatcher
from app.services.side_effects import build_dispatcher


@lru_cache
def get_email_service() -> EmailService:
    return EmailService(SmtpEmailSender())


@lru_cache
def get_dispatcher() -> EventDispatcher:
    return build_dispatcher(SessionLocal, get_email_service())


def get_appointment_service(
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> AppointmentService:
    return AppointmentService(db, dispatcher)
