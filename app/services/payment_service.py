"""Payment ledger: one payment per appointment.

Gateway order creation and signature checks live outside this service; it
records orders and reacts to the gateway's completion signal.
"""
import uuid
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from app.core.logger import get_logger
from app.models.appointment import Appointment
from app.models.payment import Payment, PaymentStatus
from app.services.events import EventDispatcher, PaymentCompleted
from app.utils.time import utcnow

logger = get_logger(__name__)

DOCTOR_RECENT_PAYMENTS_LIMIT = 10
ALL_RECENT_PAYMENTS_LIMIT = 20


def get_payment_for_appointment(db: Session, appointment_id: int) -> Optional[Payment]:
    return db.query(Payment).filter(Payment.appointment_id == appointment_id).first()


def is_payment_completed(db: Session, appointment_id: int) -> bool:
    payment = get_payment_for_appointment(db, appointment_id)
    return payment is not None and payment.status == PaymentStatus.COMPLETED


def create_payment_order(
    db: Session,
    appointment_id: int,
    acting_patient_id: int,
    settings: Optional[Settings] = None,
) -> Payment:
    settings = settings or get_settings()

    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise NotFoundError(f"Appointment not found with id: {appointment_id}")
    if appointment.patient_id != acting_patient_id:
        raise ForbiddenError("You can only pay for your own appointments")

    if get_payment_for_appointment(db, appointment_id):
        raise InvalidStateError("Payment already exists for this appointment")

    fee = appointment.doctor.consultation_fee
    if fee is None or fee < settings.MIN_CONSULTATION_FEE:
        raise InvalidStateError(
            f"Consultation fee must be at least {settings.MIN_CONSULTATION_FEE:.2f}"
        )

    payment = Payment(
        appointment_id=appointment.id,
        amount=fee,
        order_id=f"order_{uuid.uuid4().hex}",
        status=PaymentStatus.PENDING,
    )
    db.add(payment)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent order for the same appointment won the unique constraint
        db.rollback()
        logger.warning("Duplicate payment order for appointment %s", appointment_id)
        raise InvalidStateError("Payment already exists for this appointment")
    db.refresh(payment)
    logger.info("Payment order %s created for appointment %s (amount %.2f)", payment.order_id, appointment_id, fee)
    return payment


def _get_by_order_id(db: Session, order_id: str, acting_patient_id: Optional[int] = None) -> Payment:
    payment = db.query(Payment).filter(Payment.order_id == order_id).with_for_update().first()
    if not payment:
        db.rollback()
        raise NotFoundError("Payment not found")
    if acting_patient_id is not None and payment.appointment.patient_id != acting_patient_id:
        db.rollback()
        raise ForbiddenError("You can only settle your own payments")
    return payment


def complete_payment(
    db: Session,
    order_id: str,
    gateway_payment_id: str,
    dispatcher: Optional[EventDispatcher] = None,
    acting_patient_id: Optional[int] = None,
) -> Payment:
    payment = _get_by_order_id(db, order_id, acting_patient_id)
    if payment.status == PaymentStatus.COMPLETED:
        db.rollback()
        raise InvalidStateError("Payment is already completed")

    payment.gateway_payment_id = gateway_payment_id
    payment.status = PaymentStatus.COMPLETED
    payment.failure_reason = None
    payment.paid_at = utcnow()
    db.commit()
    db.refresh(payment)
    logger.info("Payment %s completed for appointment %s", payment.id, payment.appointment_id)

    if dispatcher is not None:
        appointment = payment.appointment
        dispatcher.dispatch([
            PaymentCompleted(
                payment_id=payment.id,
                appointment_id=appointment.id,
                patient_name=appointment.patient.display_name,
                patient_email=appointment.patient.email,
                doctor_name=appointment.doctor.display_name,
                amount=payment.amount,
                appointment_datetime=appointment.appointment_datetime,
            )
        ])
    return payment


def fail_payment(db: Session, order_id: str, reason: str, acting_patient_id: Optional[int] = None) -> Payment:
    payment = _get_by_order_id(db, order_id, acting_patient_id)
    if payment.status == PaymentStatus.COMPLETED:
        db.rollback()
        raise InvalidStateError("Payment is already completed")

    payment.status = PaymentStatus.FAILED
    payment.failure_reason = reason
    db.commit()
    db.refresh(payment)
    logger.warning("Payment %s failed: %s", payment.id, reason)
    return payment


def _revenue_summary(completed, recent_limit: int) -> dict:
    total = completed.with_entities(func.coalesce(func.sum(Payment.amount), 0.0)).scalar()
    count = completed.count()
    recent = completed.order_by(Payment.paid_at.desc(), Payment.id.desc()).limit(recent_limit).all()

    return {
        "total_revenue": float(total or 0.0),
        "total_completed_payments": count,
        "average_consultation_fee": float(total) / count if count else 0.0,
        "recent_payments": recent,
    }


def get_doctor_revenue(db: Session, doctor_id: int) -> dict:
    completed = db.query(Payment).join(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Payment.status == PaymentStatus.COMPLETED
    )
    return _revenue_summary(completed, DOCTOR_RECENT_PAYMENTS_LIMIT)


def get_total_revenue(db: Session) -> dict:
    """Clinic-wide revenue across every doctor."""
    completed = db.query(Payment).filter(Payment.status == PaymentStatus.COMPLETED)
    return _revenue_summary(completed, ALL_RECENT_PAYMENTS_LIMIT)
