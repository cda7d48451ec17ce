from sqlalchemy import Boolean, Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.time import utcnow

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, nullable=False)  # APPOINTMENT, PAYMENT, ...
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Optional reference
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)

    # Relationships
    patient = relationship("User", back_populates="notifications")
    appointment = relationship("Appointment", back_populates="notifications")
