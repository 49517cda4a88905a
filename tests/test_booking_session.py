"""
Tests for the visitor booking workflow (Calendar -> Time -> Form -> Confirmation).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from booking_service.application.exceptions import InvalidSessionState, StoreUnavailableError, ValidationError
from booking_service.application.use_cases.booking_session import BookingSessionUseCase
from booking_service.application.use_cases.reservation import ReservationCoordinator, Reserved
from booking_service.domain.entities.appointment import AppointmentStatus, Contact
from booking_service.domain.entities.booking_session import SessionStep
from booking_service.infrastructure.store.memory_store import MemoryBookingStore


MONDAY = date(2025, 7, 14)
MONDAY_10AM = datetime(2025, 7, 14, 14, 0, tzinfo=timezone.utc)


class FlakyStore(MemoryBookingStore):
    """Reads work, writes fail."""

    def insert_if_free(self, appointment, now, timeout):
        raise StoreUnavailableError("disk full")


@pytest.fixture
def sessions(catalog, store, coordinator, hours, clock) -> BookingSessionUseCase:
    return BookingSessionUseCase(
        catalog=catalog,
        store=store,
        coordinator=coordinator,
        business_hours=hours,
        clock=clock,
    )


def at_form(sessions: BookingSessionUseCase, service_id: str = "demo", start: datetime = MONDAY_10AM):
    session = sessions.start().session
    session = sessions.select_service(session, service_id).session
    session = sessions.select_date(session, MONDAY).session
    return sessions.select_slot(session, start).session


def test_full_booking_flow(sessions, store, contact, clock):
    started = sessions.start(source="partner-site")
    assert started.action == "choose_service"
    assert started.session.step == SessionStep.calendar

    chosen = sessions.select_service(started.session, "demo")
    assert chosen.action == "choose_date"
    assert chosen.session.selected_service_id == "demo"

    dated = sessions.select_date(chosen.session, MONDAY)
    assert dated.action == "choose_time"
    assert dated.session.step == SessionStep.time
    assert dated.slots[0].start_instant == datetime(2025, 7, 14, 13, 0, tzinfo=timezone.utc)
    assert len(dated.session.offered_slots) == len(dated.slots)

    picked = sessions.select_slot(dated.session, MONDAY_10AM)
    assert picked.action == "fill_form"
    assert picked.session.step == SessionStep.form
    assert picked.session.selected_slot.start_instant == MONDAY_10AM

    done = sessions.submit_contact(picked.session, contact)
    assert done.action == "confirmed"
    assert done.session.step == SessionStep.confirmation
    assert done.session.appointment_id == done.appointment.id

    stored = store.get(done.appointment.id)
    assert stored.status == AppointmentStatus.confirmed
    assert stored.source == "partner-site"
    assert stored.start_instant == MONDAY_10AM
    assert done.session.updated_at == clock()


def test_rejected_operations_leave_session_unchanged(sessions, contact):
    session = sessions.start().session

    with pytest.raises(InvalidSessionState):
        sessions.select_slot(session, MONDAY_10AM)
    with pytest.raises(InvalidSessionState):
        sessions.submit_contact(session, contact)
    with pytest.raises(InvalidSessionState):
        sessions.select_date(session, MONDAY)  # no service yet
    with pytest.raises(InvalidSessionState):
        sessions.back(session)

    assert session.step == SessionStep.calendar
    assert session.selected_service_id is None


def test_select_service_rejects_unknown_service(sessions):
    with pytest.raises(ValidationError) as exc:
        sessions.select_service(sessions.start().session, "yoga")
    assert exc.value.fields == ["serviceId"]


def test_select_date_rejects_weekend_and_past_days(sessions):
    session = sessions.select_service(sessions.start().session, "demo").session

    with pytest.raises(ValidationError) as exc:
        sessions.select_date(session, date(2025, 7, 12))
    assert exc.value.fields == ["date"]

    with pytest.raises(ValidationError):
        sessions.select_date(session, date(2025, 7, 9))


def test_fully_booked_day_reports_no_availability(sessions, coordinator, contact, clock):
    # Thursday afternoon: only slots from 10:30 local remain after lead time.
    for hour in range(14, 22):
        start = datetime(2025, 7, 10, hour, 30, tzinfo=timezone.utc)
        if start + timedelta(minutes=60) <= datetime(2025, 7, 10, 22, 0, tzinfo=timezone.utc):
            assert isinstance(coordinator.reserve("demo", start, 60, contact), Reserved)

    session = sessions.select_service(sessions.start().session, "demo").session
    result = sessions.select_date(session, date(2025, 7, 10))

    assert result.action == "no_availability"
    assert result.slots == []
    assert result.session.step == SessionStep.time


def test_slot_not_offered_is_rejected(sessions):
    session = sessions.select_service(sessions.start().session, "demo").session
    session = sessions.select_date(session, MONDAY).session

    with pytest.raises(ValidationError) as exc:
        sessions.select_slot(session, MONDAY_10AM + timedelta(minutes=10))
    assert exc.value.fields == ["startInstant"]


def test_invalid_contact_keeps_form_step(sessions):
    session = at_form(sessions)

    with pytest.raises(ValidationError) as exc:
        sessions.submit_contact(session, Contact(name="Jane", email="jane@", phone="5550102030"))

    assert exc.value.fields == ["contact.email"]
    assert session.step == SessionStep.form


def test_slot_taken_meanwhile_returns_to_time_without_it(sessions, coordinator, contact):
    session = at_form(sessions)
    assert isinstance(coordinator.reserve("demo", MONDAY_10AM, 60, contact), Reserved)

    result = sessions.submit_contact(session, contact)

    assert result.action == "slot_no_longer_available"
    assert result.session.step == SessionStep.time
    assert result.session.selected_slot is None
    assert result.session.draft_contact == contact
    offered = [s.start_instant for s in result.session.offered_slots]
    assert MONDAY_10AM not in offered
    assert offered == [s.start_instant for s in result.slots]

    # Picking another time and resubmitting completes the booking.
    retry = sessions.select_slot(result.session, offered[-1])
    assert sessions.submit_contact(retry.session, contact).action == "confirmed"


def test_lead_time_passing_on_form_returns_to_time(sessions, contact, clock):
    session = sessions.select_service(sessions.start().session, "demo").session
    session = sessions.select_date(session, date(2025, 7, 10)).session
    first = session.offered_slots[0]
    session = sessions.select_slot(session, first.start_instant).session

    clock.now = first.start_instant - timedelta(minutes=10)
    result = sessions.submit_contact(session, contact)

    assert result.action == "slot_no_longer_available"
    assert first not in result.session.offered_slots


def test_store_outage_keeps_visitor_on_form(catalog, hours, publisher, clock, contact):
    store = FlakyStore()
    coordinator = ReservationCoordinator(store, catalog, hours, publisher, clock=clock)
    sessions = BookingSessionUseCase(catalog, store, coordinator, hours, clock=clock)
    session = at_form(sessions)

    result = sessions.submit_contact(session, contact)

    assert result.action == "store_unavailable"
    assert result.session.step == SessionStep.form
    assert result.session.selected_slot.start_instant == MONDAY_10AM
    assert result.session.draft_contact == contact


def test_back_navigation(sessions):
    form = at_form(sessions)

    to_time = sessions.back(form)
    assert to_time.action == "choose_time"
    assert to_time.session.step == SessionStep.time
    assert to_time.session.selected_slot is None
    assert MONDAY_10AM in [s.start_instant for s in to_time.session.offered_slots]

    to_calendar = sessions.back(to_time.session)
    assert to_calendar.action == "choose_date"
    assert to_calendar.session.step == SessionStep.calendar
    assert to_calendar.session.selected_date is None
    assert to_calendar.session.offered_slots == ()
    assert to_calendar.session.selected_service_id == "demo"


def test_back_from_confirmation_is_invalid(sessions, contact):
    done = sessions.submit_contact(at_form(sessions), contact)

    with pytest.raises(InvalidSessionState):
        sessions.back(done.session)
