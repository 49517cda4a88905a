from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from booking_service.application.exceptions import InvalidAppointmentState


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


ALLOWED_TRANSITIONS: dict[AppointmentStatus, set[AppointmentStatus]] = {
    AppointmentStatus.pending: {AppointmentStatus.confirmed, AppointmentStatus.cancelled},
    AppointmentStatus.confirmed: {AppointmentStatus.cancelled},
    AppointmentStatus.cancelled: set(),
}


@dataclass(frozen=True)
class Contact:
    name: str
    email: str
    phone: str
    company: str | None = None
    website: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class Appointment:
    id: str
    service_id: str
    start_instant: datetime  # UTC
    duration_minutes: int
    contact: Contact
    source: str
    status: AppointmentStatus
    created_at: datetime
    version: int = 1
    hold_expires_at: datetime | None = None  # only meaningful while pending
    updated_at: datetime | None = None

    @property
    def end_instant(self) -> datetime:
        return self.start_instant + timedelta(minutes=self.duration_minutes)

    def overlaps(self, start: datetime, duration_minutes: int) -> bool:
        end = start + timedelta(minutes=duration_minutes)
        return self.start_instant < end and start < self.end_instant

    def blocks_slot(self, now: datetime) -> bool:
        """Confirmed appointments and unexpired pending holds keep their slot taken."""
        if self.status == AppointmentStatus.confirmed:
            return True
        if self.status == AppointmentStatus.pending:
            return self.hold_expires_at is None or self.hold_expires_at > now
        return False


def apply_transition(
    appointment: Appointment,
    to_status: AppointmentStatus,
    now: datetime,
) -> tuple[Appointment, bool]:
    """
    Move an appointment to `to_status`.
    Returns (appointment, changed). Re-applying the current status is a no-op.
    """
    if appointment.status == to_status:
        return appointment, False
    if to_status not in ALLOWED_TRANSITIONS[appointment.status]:
        raise InvalidAppointmentState(
            f"Cannot move appointment {appointment.id} from {appointment.status.value} to {to_status.value}"
        )
    if appointment.status == AppointmentStatus.pending and to_status == AppointmentStatus.confirmed:
        if appointment.hold_expires_at is not None and appointment.hold_expires_at <= now:
            raise InvalidAppointmentState(f"Hold for appointment {appointment.id} has expired")
    updated = replace(
        appointment,
        status=to_status,
        version=appointment.version + 1,
        hold_expires_at=None,
        updated_at=now,
    )
    return updated, True
