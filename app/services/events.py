"""Post-commit events and their dispatcher.

Services commit first and then hand the resulting events to an
``EventDispatcher``. Each subscribed handler runs in isolation: a failing
handler is logged and the remaining handlers still run.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Type

from app.core.logger import get_logger
from app.models.appointment import AppointmentStatus

logger = get_logger(__name__)


@dataclass(frozen=True)
class AppointmentBooked:
    appointment_id: int
    patient_id: int
    patient_name: str
    patient_email: str
    doctor_id: int
    doctor_name: str
    doctor_email: str
    specialization: Optional[str]
    appointment_datetime: datetime
    reason_for_visit: str


@dataclass(frozen=True)
class AppointmentStatusChanged:
    appointment_id: int
    patient_id: int
    patient_name: str
    patient_email: str
    doctor_name: str
    appointment_datetime: datetime
    previous_status: AppointmentStatus
    new_status: AppointmentStatus
    notes: Optional[str] = None


@dataclass(frozen=True)
class AppointmentCancelled:
    appointment_id: int
    patient_id: int
    doctor_id: int
    previous_status: AppointmentStatus


@dataclass(frozen=True)
class PaymentCompleted:
    payment_id: int
    appointment_id: int
    patient_name: str
    patient_email: str
    doctor_name: str
    amount: float
    appointment_datetime: datetime


Handler = Callable[[object], None]


class EventDispatcher:
    def __init__(self):
        self._handlers: Dict[Type, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def handlers_for(self, event_type: Type) -> List[Handler]:
        return list(self._handlers.get(event_type, []))

    def dispatch(self, events: Iterable[object]) -> int:
        """Run every handler for every event and return how many failed."""
        failures = 0
        for event in events:
            for handler in self.handlers_for(type(event)):
                try:
                    handler(event)
                except Exception:
                    failures += 1
                    logger.exception(
                        "Side effect %s failed for %s",
                        getattr(handler, "__name__", repr(handler)),
                        type(event).__name__,
                    )
        return failures
