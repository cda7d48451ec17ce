"""
Shared pytest fixtures.

Each test gets its own SQLite database file, a recording email sender and
an inline submit function so side effects run before the call returns.
"""

import os
from datetime import timedelta

# Configure the application before anything imports it
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from apscheduler.schedulers.background import BackgroundScheduler
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.core import scheduler as scheduler_module
from app.core.security import create_access_token
from app.database import Base, build_engine
from app.models.appointment import Appointment, AppointmentStatus  # noqa: F401
from app.models.notification import Notification  # noqa: F401
from app.models.payment import Payment  # noqa: F401
from app.models.user import User, UserRole
from app.services.appointment_service import AppointmentService
from app.services.email_service import EmailService
from app.services.side_effects import build_dispatcher
from app.utils.time import utcnow


class RecordingEmailSender:
    """Collects outgoing emails instead of talking to SMTP."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, subject, html_content):
        if self.fail:
            raise ConnectionError("SMTP unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html_content})
        return True

    def subjects(self, to=None):
        return [mail["subject"] for mail in self.sent if to is None or mail["to"] == to]


def run_inline(func, **kwargs):
    func(**kwargs)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'clinic_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def settings():
    return Settings(_env_file=None, SCHEDULER_ENABLED=False, FRONTEND_URL="http://frontend.test")


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def email_service(email_sender):
    return EmailService(email_sender, submit=run_inline, frontend_url="http://frontend.test")


@pytest.fixture
def dispatcher(session_factory, email_service):
    return build_dispatcher(session_factory, email_service)


@pytest.fixture
def service(db, dispatcher, settings):
    return AppointmentService(db, dispatcher, settings=settings)


@pytest.fixture
def background_scheduler(monkeypatch):
    """A private scheduler for tests that go through the real background submit."""
    fresh = BackgroundScheduler()
    monkeypatch.setattr(scheduler_module, "scheduler", fresh)
    yield fresh
    if fresh.running:
        fresh.shutdown(wait=True)


# ============================================================================
# DIRECTORY FIXTURES
# ============================================================================


def _add_user(db, **fields):
    user = User(**fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_user(db):
    def factory(role=UserRole.PATIENT, **fields):
        count = db.query(User).count() + 1
        defaults = {
            "email": f"user{count}@example.com",
            "full_name": f"User {count}",
            "role": role,
            "is_active": True,
            "is_password_set": True,
        }
        if role == UserRole.DOCTOR:
            defaults.update({
                "specialization": "Cardiology",
                "license_number": f"LIC-{count}",
                "consultation_fee": 500.0,
                "is_available": True,
            })
        defaults.update(fields)
        return _add_user(db, **defaults)
    return factory


@pytest.fixture
def patient(make_user):
    return make_user(UserRole.PATIENT, email="jane@example.com", full_name="Jane Doe")


@pytest.fixture
def other_patient(make_user):
    return make_user(UserRole.PATIENT, email="john@example.com", full_name="John Roe")


@pytest.fixture
def doctor(make_user):
    return make_user(UserRole.DOCTOR, email="house@example.com", full_name="Gregory House")


@pytest.fixture
def other_doctor(make_user):
    return make_user(UserRole.DOCTOR, email="wilson@example.com", full_name="James Wilson",
                     specialization="Oncology")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, email="cuddy@example.com", full_name="Lisa Cuddy")


@pytest.fixture
def future():
    return utcnow() + timedelta(days=3)


@pytest.fixture
def booked(service, patient, doctor, future):
    return service.book(patient.id, doctor.id, future, "checkup")


# ============================================================================
# HTTP FIXTURES
# ============================================================================


@pytest.fixture
def client(session_factory, dispatcher):
    from app.database import get_db
    from app.deps import get_dispatcher
    from app.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def build(user):
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}
    return build
