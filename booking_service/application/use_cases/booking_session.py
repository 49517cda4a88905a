from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta

from booking_service.application.exceptions import InvalidSessionState, ValidationError
from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.application.ports.service_catalog import ServiceCatalogPort
from booking_service.application.use_cases.reservation import (
    Defer,
    ReservationCoordinator,
    Reserved,
    SlotConflict,
)
from booking_service.application.use_cases.slot_generator import (
    blocking_appointments,
    is_bookable_start,
    slots_for_day,
)
from booking_service.application.utils.contact_rules import validate_contact
from booking_service.application.utils.instants import ensure_utc, local_date, utc_now
from booking_service.domain.entities.appointment import Appointment, Contact
from booking_service.domain.entities.booking_session import BookingSession, SessionStep
from booking_service.domain.entities.business_hours import BusinessHoursConfig
from booking_service.domain.entities.service import Service
from booking_service.domain.entities.slot import Slot


@dataclass(frozen=True)
class SessionResult:
    action: str
    session: BookingSession
    slots: list[Slot] | None = None
    appointment: Appointment | None = None


class BookingSessionUseCase:
    """
    Drives the visitor workflow Calendar -> Time -> Form -> Confirmation.

    Sessions are immutable values: every operation returns a SessionResult with a new
    session, and a rejected operation raises without touching the one passed in.
    """

    def __init__(
        self,
        catalog: ServiceCatalogPort,
        store: BookingStorePort,
        coordinator: ReservationCoordinator,
        business_hours: BusinessHoursConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._coordinator = coordinator
        self._business_hours = business_hours
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def start(self, source: str = "widget") -> SessionResult:
        session = BookingSession(
            session_id=uuid.uuid4().hex,
            source=source or "widget",
            updated_at=self._clock(),
        )
        return SessionResult(action="choose_service", session=session)

    def select_service(self, session: BookingSession, service_id: str) -> SessionResult:
        self._require_step(session, SessionStep.calendar, "select a service")
        service = self._get_service(service_id)
        updated = self._touch(session, selected_service_id=service.id, selected_date=None)
        return SessionResult(action="choose_date", session=updated)

    def select_date(self, session: BookingSession, day: date) -> SessionResult:
        self._require_step(session, SessionStep.calendar, "select a date")
        if session.selected_service_id is None:
            raise InvalidSessionState("A service must be selected before a date")

        now = self._clock()
        if day.weekday() not in self._business_hours.working_days:
            raise ValidationError(f"{day.isoformat()} is not a working day", fields=["date"])
        if day < local_date(now, self._business_hours.zone):
            raise ValidationError(f"{day.isoformat()} is in the past", fields=["date"])

        service = self._get_service(session.selected_service_id)
        slots = self._generate(service, day, now)
        updated = self._touch(
            session,
            step=SessionStep.time,
            selected_date=day,
            offered_slots=tuple(slots),
            selected_slot=None,
        )
        return SessionResult(
            action="choose_time" if slots else "no_availability",
            session=updated,
            slots=slots,
        )

    def select_slot(self, session: BookingSession, start_instant: datetime) -> SessionResult:
        self._require_step(session, SessionStep.time, "select a time")
        start = ensure_utc(start_instant)
        chosen = next((s for s in session.offered_slots if s.start_instant == start), None)
        if chosen is None:
            raise ValidationError("Selected time is not one of the offered slots", fields=["startInstant"])
        updated = self._touch(session, step=SessionStep.form, selected_slot=chosen)
        return SessionResult(action="fill_form", session=updated)

    def submit_contact(
        self,
        session: BookingSession,
        contact: Contact,
        defer: Defer | None = None,
    ) -> SessionResult:
        self._require_step(session, SessionStep.form, "submit contact details")
        slot = session.selected_slot
        if slot is None:
            raise InvalidSessionState("No slot selected")

        contact = validate_contact(contact)
        service = self._get_service(slot.service_id)
        if not is_bookable_start(self._business_hours, service, slot.start_instant, self._clock()):
            # The visitor lingered past the lead time; the slot went stale without a conflict.
            return self._back_to_time(session, service, slot, contact, "lead_time_passed")

        result = self._coordinator.reserve(
            service_id=slot.service_id,
            start_instant=slot.start_instant,
            duration_minutes=slot.duration_minutes,
            contact=contact,
            source=session.source,
            defer=defer,
        )

        if isinstance(result, Reserved):
            updated = self._touch(
                session,
                step=SessionStep.confirmation,
                draft_contact=contact,
                appointment_id=result.appointment.id,
            )
            return SessionResult(action="confirmed", session=updated, appointment=result.appointment)

        if isinstance(result, SlotConflict):
            return self._back_to_time(session, service, slot, contact, result.reason)

        # StoreUnavailable: keep the visitor on the form with what they typed.
        updated = self._touch(session, draft_contact=contact)
        return SessionResult(action="store_unavailable", session=updated)

    def _back_to_time(
        self,
        session: BookingSession,
        service: Service,
        stale_slot: Slot,
        contact: Contact,
        reason: str,
    ) -> SessionResult:
        day = session.selected_date or local_date(stale_slot.start_instant, self._business_hours.zone)
        # The read side may lag the store; never re-offer the slot that was just refused.
        slots = [s for s in self._generate(service, day, self._clock()) if s != stale_slot]
        updated = self._touch(
            session,
            step=SessionStep.time,
            selected_slot=None,
            offered_slots=tuple(slots),
            draft_contact=contact,
        )
        self._logger.info(
            "Slot no longer available",
            extra={"session_id": session.session_id, "reason": reason},
        )
        return SessionResult(action="slot_no_longer_available", session=updated, slots=slots)

    def back(self, session: BookingSession) -> SessionResult:
        if session.step == SessionStep.time:
            updated = self._touch(
                session,
                step=SessionStep.calendar,
                selected_date=None,
                offered_slots=(),
                selected_slot=None,
            )
            return SessionResult(action="choose_date", session=updated)

        if session.step == SessionStep.form:
            service = self._get_service(session.selected_service_id or "")
            day = session.selected_date or local_date(session.selected_slot.start_instant, self._business_hours.zone)
            slots = self._generate(service, day, self._clock())
            updated = self._touch(
                session,
                step=SessionStep.time,
                selected_slot=None,
                offered_slots=tuple(slots),
            )
            return SessionResult(
                action="choose_time" if slots else "no_availability",
                session=updated,
                slots=slots,
            )

        raise InvalidSessionState(f"Cannot go back from {session.step.value}")

    def _generate(self, service: Service, day: date, now: datetime) -> list[Slot]:
        tz = self._business_hours.zone
        day_start = datetime.combine(day, datetime.min.time()).replace(tzinfo=tz)
        existing = self._store.list_for_service(service.id, day_start, day_start + timedelta(days=1))
        return slots_for_day(
            self._business_hours,
            service,
            day,
            blocking_appointments(existing, service.id, now),
            now,
        )

    def _get_service(self, service_id: str) -> Service:
        service = self._catalog.get_service(service_id)
        if service is None:
            raise ValidationError(f"Unknown service: {service_id}", fields=["serviceId"])
        return service

    def _require_step(self, session: BookingSession, step: SessionStep, action: str) -> None:
        if session.step != step:
            raise InvalidSessionState(f"Cannot {action} while in {session.step.value} step")

    def _touch(self, session: BookingSession, **changes) -> BookingSession:
        return replace(session, updated_at=self._clock(), **changes)
