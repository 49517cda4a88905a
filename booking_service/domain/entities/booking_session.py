from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from booking_service.domain.entities.appointment import Contact
from booking_service.domain.entities.slot import Slot


class SessionStep(str, Enum):
    calendar = "calendar"
    time = "time"
    form = "form"
    confirmation = "confirmation"


@dataclass(frozen=True)
class BookingSession:
    session_id: str
    step: SessionStep = SessionStep.calendar
    selected_service_id: str | None = None
    selected_date: date | None = None  # local business day
    offered_slots: tuple[Slot, ...] = ()
    selected_slot: Slot | None = None
    draft_contact: Contact | None = None
    appointment_id: str | None = None
    source: str = "widget"
    updated_at: datetime | None = None
