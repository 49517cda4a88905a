"""
Slot generation.

Produces the bookable start times for one service over a range of business days:
- only working days, inside [dayStart, dayEnd] with the whole slot fitting
- on the granularity grid anchored at dayStart
- not earlier than now + minLeadMinutes
- not overlapping a blocking appointment of the same service

Wall-clock arithmetic happens in the business time zone; slots are emitted as UTC
instants. Everything here is a pure function of its arguments.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date, datetime, timedelta, timezone

from booking_service.application.exceptions import ValidationError
from booking_service.domain.entities.appointment import Appointment
from booking_service.domain.entities.business_hours import BusinessHoursConfig
from booking_service.domain.entities.service import Service
from booking_service.domain.entities.slot import Slot


def generate_slots(
    config: BusinessHoursConfig,
    service: Service,
    existing_appointments: Iterable[Appointment],
    range_start: datetime,
    range_end: datetime,
    now: datetime,
) -> Iterator[Slot]:
    """
    Lazily yield bookable slots, day by day, in ascending order.

    Arguments are checked before the first slot is produced so bad input fails at
    the call site rather than on first iteration.
    """
    for name, value in (("rangeStart", range_start), ("rangeEnd", range_end), ("now", now)):
        if value.tzinfo is None:
            raise ValidationError(f"{name} must be timezone-aware", fields=[name])

    first_day = range_start.astimezone(config.zone).date()
    last_day = range_end.astimezone(config.zone).date()
    if last_day < first_day:
        raise ValidationError("rangeEnd is before rangeStart", fields=["rangeEnd"])

    blocking = blocking_appointments(existing_appointments, service.id, now)
    return _iter_days(config, service, blocking, first_day, last_day, now)


def _iter_days(
    config: BusinessHoursConfig,
    service: Service,
    blocking: list[Appointment],
    first_day: date,
    last_day: date,
    now: datetime,
) -> Iterator[Slot]:
    day = first_day
    while day <= last_day:
        yield from slots_for_day(config, service, day, blocking, now)
        day += timedelta(days=1)


def slots_for_day(
    config: BusinessHoursConfig,
    service: Service,
    day: date,
    existing: Iterable[Appointment],
    now: datetime,
) -> list[Slot]:
    """Bookable slots on one local business day. Only blocking appointments of `service` count; empty means no availability."""
    if day.weekday() not in config.working_days:
        return []

    blocking = blocking_appointments(existing, service.id, now)
    earliest = now + timedelta(minutes=config.min_lead_minutes)
    step = timedelta(minutes=config.slot_granularity_minutes)
    duration = timedelta(minutes=service.duration_minutes)

    wall = datetime.combine(day, config.day_start)
    closing = datetime.combine(day, config.day_end)

    slots: list[Slot] = []
    while wall + duration <= closing:
        start = wall.replace(tzinfo=config.zone).astimezone(timezone.utc)
        # Wall times inside a spring-forward gap do not exist locally.
        exists = start.astimezone(config.zone).replace(tzinfo=None) == wall
        if (
            exists
            and start >= earliest
            and not any(a.overlaps(start, service.duration_minutes) for a in blocking)
        ):
            slots.append(Slot(service_id=service.id, start_instant=start, duration_minutes=service.duration_minutes))
        wall += step
    return slots


def blocking_appointments(
    appointments: Iterable[Appointment],
    service_id: str,
    now: datetime,
) -> list[Appointment]:
    return [a for a in appointments if a.service_id == service_id and a.blocks_slot(now)]


def is_bookable_start(
    config: BusinessHoursConfig,
    service: Service,
    start: datetime,
    now: datetime,
) -> bool:
    """True if `start` is a grid slot inside business hours and beyond the lead time, ignoring bookings."""
    day = start.astimezone(config.zone).date()
    candidates = slots_for_day(config, service, day, (), now)
    return any(slot.start_instant == start for slot in candidates)
