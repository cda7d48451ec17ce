"""Unit tests for the post-commit EventDispatcher."""

from datetime import datetime

from app.models.appointment import AppointmentStatus
from app.services.events import AppointmentCancelled, AppointmentStatusChanged, EventDispatcher


def _cancelled():
    return AppointmentCancelled(
        appointment_id=1, patient_id=2, doctor_id=3, previous_status=AppointmentStatus.PENDING
    )


class TestEventDispatcher:
    def test_calls_handlers_in_subscription_order(self) -> None:
        dispatcher = EventDispatcher()
        calls = []
        dispatcher.subscribe(AppointmentCancelled, lambda e: calls.append(("first", e.appointment_id)))
        dispatcher.subscribe(AppointmentCancelled, lambda e: calls.append(("second", e.appointment_id)))

        failures = dispatcher.dispatch([_cancelled()])

        assert failures == 0
        assert calls == [("first", 1), ("second", 1)]

    def test_failing_handler_does_not_stop_the_others(self) -> None:
        dispatcher = EventDispatcher()
        calls = []

        def broken(event):
            raise RuntimeError("mail server down")

        dispatcher.subscribe(AppointmentCancelled, broken)
        dispatcher.subscribe(AppointmentCancelled, lambda e: calls.append(e.appointment_id))

        failures = dispatcher.dispatch([_cancelled(), _cancelled()])

        assert failures == 2
        assert calls == [1, 1]

    def test_only_handlers_for_the_event_type_run(self) -> None:
        dispatcher = EventDispatcher()
        calls = []
        dispatcher.subscribe(AppointmentStatusChanged, lambda e: calls.append("status"))

        dispatcher.dispatch([_cancelled()])

        assert calls == []

    def test_event_without_handlers_is_ignored(self) -> None:
        event = AppointmentStatusChanged(
            appointment_id=1,
            patient_id=2,
            patient_name="Jane",
            patient_email="jane@example.com",
            doctor_name="Dr. House",
            appointment_datetime=datetime(2030, 1, 1, 9, 0),
            previous_status=AppointmentStatus.PENDING,
            new_status=AppointmentStatus.APPROVED,
        )
        assert EventDispatcher().dispatch([event]) == 0
