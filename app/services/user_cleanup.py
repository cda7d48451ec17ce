from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.logger import get_logger
from app.models.appointment import Appointment
from app.models.user import User
from app.utils.time import utcnow

logger = get_logger(__name__)


def find_expired_unverified_users(db: Session, now: Optional[datetime] = None):
    now = now or utcnow()
    return db.query(User).filter(
        User.is_password_set == False,  # noqa: E712
        User.password_reset_token_expiry.isnot(None),
        User.password_reset_token_expiry < now,
    ).all()


def cleanup_expired_unverified_users(db: Session, now: Optional[datetime] = None) -> int:
    """Delete accounts whose password was never set and whose setup link expired.

    Accounts that already own appointments are left alone.
    """
    deleted = 0
    for user in find_expired_unverified_users(db, now):
        has_appointments = db.query(Appointment.id).filter(
            (Appointment.patient_id == user.id) | (Appointment.doctor_id == user.id)
        ).first()
        if has_appointments:
            logger.info("Keeping unverified user %s: has appointments", user.id)
            continue

        logger.info("Deleting expired unverified user %s (%s)", user.id, user.email)
        db.delete(user)
        deleted += 1

    db.commit()
    logger.info("Cleanup completed. Deleted %d expired unverified users", deleted)
    return deleted
