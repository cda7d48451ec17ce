"""Tests for the payment ledger."""

import pytest

from app.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from app.models.payment import Payment, PaymentStatus
from app.models.user import UserRole
from app.services import payment_service


class TestCreatePaymentOrder:
    def test_creates_pending_payment_for_fee(self, db, booked, patient) -> None:
        payment = payment_service.create_payment_order(db, booked.id, patient.id)

        assert payment.status == PaymentStatus.PENDING
        assert payment.amount == 500.0
        assert payment.order_id.startswith("order_")
        assert payment_service.is_payment_completed(db, booked.id) is False

    def test_second_order_is_rejected(self, db, booked, patient) -> None:
        payment_service.create_payment_order(db, booked.id, patient.id)
        with pytest.raises(InvalidStateError, match="already exists"):
            payment_service.create_payment_order(db, booked.id, patient.id)

    def test_unknown_appointment(self, db, patient) -> None:
        with pytest.raises(NotFoundError):
            payment_service.create_payment_order(db, 999, patient.id)

    def test_only_owner_can_pay(self, db, booked, other_patient) -> None:
        with pytest.raises(ForbiddenError):
            payment_service.create_payment_order(db, booked.id, other_patient.id)

    def test_fee_below_minimum(self, db, service, patient, make_user, future) -> None:
        cheap = make_user(UserRole.DOCTOR, consultation_fee=0.5)
        view = service.book(patient.id, cheap.id, future, "checkup")
        with pytest.raises(InvalidStateError, match="Consultation fee"):
            payment_service.create_payment_order(db, view.id, patient.id)


    def test_order_racing_a_committed_order_is_invalid_state(self, db, session_factory, booked, patient, monkeypatch) -> None:
        competing = session_factory()
        try:
            payment_service.create_payment_order(competing, booked.id, patient.id)
        finally:
            competing.close()

        # This request checked for an existing payment before the competing one committed
        monkeypatch.setattr(payment_service, "get_payment_for_appointment", lambda db, appointment_id: None)
        with pytest.raises(InvalidStateError, match="already exists"):
            payment_service.create_payment_order(db, booked.id, patient.id)
        monkeypatch.undo()

        assert db.query(Payment).filter(Payment.appointment_id == booked.id).count() == 1


class TestCompletePayment:
    def test_completion_marks_paid_and_emails_patient(self, db, booked, patient, dispatcher, email_sender) -> None:
        payment = payment_service.create_payment_order(db, booked.id, patient.id)

        done = payment_service.complete_payment(db, payment.order_id, "pay_42", dispatcher=dispatcher)

        assert done.status == PaymentStatus.COMPLETED
        assert done.gateway_payment_id == "pay_42"
        assert done.paid_at is not None
        assert payment_service.is_payment_completed(db, booked.id) is True
        assert "Payment Confirmation" in email_sender.subjects(patient.email)

    def test_completing_twice_fails(self, db, booked, patient) -> None:
        payment = payment_service.create_payment_order(db, booked.id, patient.id)
        payment_service.complete_payment(db, payment.order_id, "pay_1")
        with pytest.raises(InvalidStateError):
            payment_service.complete_payment(db, payment.order_id, "pay_2")

    def test_unknown_order(self, db) -> None:
        with pytest.raises(NotFoundError):
            payment_service.complete_payment(db, "order_missing", "pay_1")

    def test_other_patient_cannot_settle(self, db, booked, patient, other_patient) -> None:
        payment = payment_service.create_payment_order(db, booked.id, patient.id)
        with pytest.raises(ForbiddenError):
            payment_service.complete_payment(db, payment.order_id, "pay_1", acting_patient_id=other_patient.id)

    def test_fail_payment_records_reason(self, db, booked, patient) -> None:
        payment = payment_service.create_payment_order(db, booked.id, patient.id)
        failed = payment_service.fail_payment(db, payment.order_id, "card declined")
        assert failed.status == PaymentStatus.FAILED
        assert failed.failure_reason == "card declined"
        assert payment_service.is_payment_completed(db, booked.id) is False


class TestDoctorRevenue:
    def test_sums_completed_payments_only(self, db, service, patient, doctor, future) -> None:
        paid = service.book(patient.id, doctor.id, future, "a")
        unpaid = service.book(patient.id, doctor.id, future, "b")
        order = payment_service.create_payment_order(db, paid.id, patient.id)
        payment_service.complete_payment(db, order.order_id, "pay_1")
        payment_service.create_payment_order(db, unpaid.id, patient.id)

        revenue = payment_service.get_doctor_revenue(db, doctor.id)

        assert revenue["total_revenue"] == 500.0
        assert revenue["total_completed_payments"] == 1
        assert revenue["average_consultation_fee"] == 500.0
        assert [p.appointment_id for p in revenue["recent_payments"]] == [paid.id]

    def test_no_payments(self, db, other_doctor) -> None:
        revenue = payment_service.get_doctor_revenue(db, other_doctor.id)
        assert revenue["total_revenue"] == 0.0
        assert revenue["total_completed_payments"] == 0
        assert revenue["average_consultation_fee"] == 0.0
        assert revenue["recent_payments"] == []


class TestTotalRevenue:
    def test_sums_completed_payments_across_doctors(self, db, service, patient, doctor, other_doctor, future) -> None:
        other_doctor.consultation_fee = 300.0
        db.commit()
        first = service.book(patient.id, doctor.id, future, "a")
        second = service.book(patient.id, other_doctor.id, future, "b")
        failed = service.book(patient.id, doctor.id, future, "c")
        for view, gateway_id in ((first, "pay_1"), (second, "pay_2")):
            order = payment_service.create_payment_order(db, view.id, patient.id)
            payment_service.complete_payment(db, order.order_id, gateway_id)
        order = payment_service.create_payment_order(db, failed.id, patient.id)
        payment_service.fail_payment(db, order.order_id, "card declined")

        revenue = payment_service.get_total_revenue(db)

        assert revenue["total_revenue"] == 800.0
        assert revenue["total_completed_payments"] == 2
        assert revenue["average_consultation_fee"] == 400.0
        assert {p.appointment_id for p in revenue["recent_payments"]} == {first.id, second.id}

    def test_recent_payments_are_capped(self, db, service, patient, doctor, future) -> None:
        for i in range(payment_service.ALL_RECENT_PAYMENTS_LIMIT + 2):
            view = service.book(patient.id, doctor.id, future, f"visit {i}")
            order = payment_service.create_payment_order(db, view.id, patient.id)
            payment_service.complete_payment(db, order.order_id, f"pay_{i}")

        revenue = payment_service.get_total_revenue(db)

        assert revenue["total_completed_payments"] == payment_service.ALL_RECENT_PAYMENTS_LIMIT + 2
        assert len(revenue["recent_payments"]) == payment_service.ALL_RECENT_PAYMENTS_LIMIT
