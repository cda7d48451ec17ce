from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.user import User, UserRole


def find_patient_by_id(db: Session, patient_id: int) -> User:
    patient = db.query(User).filter(
        User.id == patient_id,
        User.role == UserRole.PATIENT
    ).first()
    if not patient:
        raise NotFoundError(f"Patient not found with id: {patient_id}")
    return patient


def find_doctor_by_id(db: Session, doctor_id: int) -> User:
    doctor = db.query(User).filter(
        User.id == doctor_id,
        User.role == UserRole.DOCTOR
    ).first()
    if not doctor:
        raise NotFoundError(f"Doctor not found with id: {doctor_id}")
    return doctor
