"""Appointment status transitions.

PENDING  -> APPROVED | REJECTED | CANCELLED
APPROVED -> COMPLETED | CANCELLED
REJECTED, COMPLETED and CANCELLED are terminal.
"""
from app.core.exceptions import InvalidStateError
from app.models.appointment import AppointmentStatus

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: frozenset({
        AppointmentStatus.APPROVED,
        AppointmentStatus.REJECTED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.APPROVED: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.REJECTED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def is_terminal(status: AppointmentStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: AppointmentStatus, new: AppointmentStatus) -> None:
    if is_terminal(current):
        raise InvalidStateError(
            f"Appointment is {current.value} and can no longer be changed"
        )
    if not can_transition(current, new):
        raise InvalidStateError(
            f"Cannot change appointment status from {current.value} to {new.value}"
        )
