from sqlalchemy import Boolean, Column, Integer, String, DateTime, Text, Float, Date, Enum
from sqlalchemy.orm import relationship
import enum
from app.database import Base
from app.utils.time import utcnow

class UserRole(str, enum.Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=True)
    role = Column(Enum(UserRole), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Account setup (issued by the external auth service)
    is_password_set = Column(Boolean, default=False, nullable=False)
    password_reset_token_expiry = Column(DateTime, nullable=True)

    # Doctor specific fields
    specialization = Column(String, nullable=True)
    license_number = Column(String, unique=True, nullable=True)
    consultation_fee = Column(Float, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    bio = Column(Text, nullable=True)

    # Patient specific fields
    date_of_birth = Column(Date, nullable=True)
    address = Column(String, nullable=True)

    # Relationships
    notifications = relationship("Notification", back_populates="patient", cascade="all, delete-orphan")
    doctor_appointments = relationship("Appointment", foreign_keys="Appointment.doctor_id", back_populates="doctor")
    patient_appointments = relationship("Appointment", foreign_keys="Appointment.patient_id", back_populates="patient")

    @property
    def is_doctor(self) -> bool:
        return self.role == UserRole.DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.role == UserRole.PATIENT

    @property
    def display_name(self) -> str:
        if self.is_doctor:
            return f"Dr. {self.full_name}"
        return self.full_name

    @property
    def is_accepting_appointments(self) -> bool:
        return bool(self.is_active and self.is_available)
