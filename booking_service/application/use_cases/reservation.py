from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from booking_service.application.exceptions import (
    ReservationTimeoutError,
    StoreUnavailableError,
    ValidationError,
)
from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.application.ports.event_publisher import (
    APPOINTMENT_CANCELLED,
    APPOINTMENT_CONFIRMED,
    EventPublisherPort,
)
from booking_service.application.ports.service_catalog import ServiceCatalogPort
from booking_service.application.use_cases.slot_generator import is_bookable_start
from booking_service.application.utils.contact_rules import validate_contact
from booking_service.application.utils.instants import ensure_utc, utc_now
from booking_service.domain.entities.appointment import Appointment, AppointmentStatus, Contact
from booking_service.domain.entities.business_hours import BusinessHoursConfig


@dataclass(frozen=True)
class Reserved:
    appointment: Appointment


@dataclass(frozen=True)
class SlotConflict:
    service_id: str
    start_instant: datetime
    reason: str = "slot_taken"  # or "reservation_timeout"

    @property
    def retryable(self) -> bool:
        return self.reason == "reservation_timeout"


@dataclass(frozen=True)
class StoreUnavailable:
    detail: str


@dataclass(frozen=True)
class Transitioned:
    appointment: Appointment
    changed: bool


@dataclass(frozen=True)
class NotFound:
    appointment_id: str


ReservationResult = Reserved | SlotConflict | StoreUnavailable
TransitionResult = Transitioned | NotFound | StoreUnavailable
# Schedules a call for later, e.g. `BackgroundTasks.add_task`.
Defer = Callable[..., None]


class ReservationCoordinator:
    """
    The only writer of appointments.
    Conflicts and storage outages come back as result values, never as exceptions;
    bad input raises ValidationError before anything touches the store.
    """

    def __init__(
        self,
        store: BookingStorePort,
        catalog: ServiceCatalogPort,
        business_hours: BusinessHoursConfig,
        publisher: EventPublisherPort,
        reserve_timeout_seconds: float = 5.0,
        pending_hold_minutes: int = 10,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._business_hours = business_hours
        self._publisher = publisher
        self._timeout = reserve_timeout_seconds
        self._hold = timedelta(minutes=pending_hold_minutes)
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def reserve(
        self,
        service_id: str,
        start_instant: datetime,
        duration_minutes: int,
        contact: Contact,
        source: str = "widget",
        hold: bool = False,
        defer: Defer | None = None,
    ) -> ReservationResult:
        """
        Reserve a slot. With hold=False the appointment is confirmed immediately;
        with hold=True it stays pending until `confirm` or until the hold expires.
        Events are handed to `defer` when given, else published inline.
        """
        now = self._clock()
        start = ensure_utc(start_instant)

        service = self._catalog.get_service(service_id)
        if service is None:
            raise ValidationError(f"Unknown service: {service_id}", fields=["serviceId"])
        if duration_minutes != service.duration_minutes:
            raise ValidationError(
                f"Duration {duration_minutes} does not match service duration {service.duration_minutes}",
                fields=["durationMinutes"],
            )
        contact = validate_contact(contact)
        if not is_bookable_start(self._business_hours, service, start, now):
            raise ValidationError("Requested time is not a bookable slot", fields=["startInstant"])

        appointment = Appointment(
            id=uuid.uuid4().hex,
            service_id=service.id,
            start_instant=start,
            duration_minutes=service.duration_minutes,
            contact=contact,
            source=source or "widget",
            status=AppointmentStatus.pending if hold else AppointmentStatus.confirmed,
            created_at=now,
            hold_expires_at=now + self._hold if hold else None,
            updated_at=now,
        )

        try:
            inserted = self._store.insert_if_free(appointment, now=now, timeout=self._timeout)
        except ReservationTimeoutError:
            self._logger.info(
                "Reservation timed out",
                extra={"service_id": service.id, "start_instant": start.isoformat(), "reason": "reservation_timeout"},
            )
            return SlotConflict(service_id=service.id, start_instant=start, reason="reservation_timeout")
        except StoreUnavailableError as e:
            self._logger.warning(
                "Booking store unavailable",
                extra={"service_id": service.id, "start_instant": start.isoformat(), "reason": str(e)},
            )
            return StoreUnavailable(detail=str(e))

        if not inserted:
            self._logger.info(
                "Slot already taken",
                extra={"service_id": service.id, "start_instant": start.isoformat(), "reason": "slot_taken"},
            )
            return SlotConflict(service_id=service.id, start_instant=start)

        self._logger.info(
            "Appointment reserved",
            extra={
                "appointment_id": appointment.id,
                "service_id": service.id,
                "start_instant": start.isoformat(),
                "status": appointment.status.value,
            },
        )
        if appointment.status == AppointmentStatus.confirmed:
            self._publish(APPOINTMENT_CONFIRMED, appointment, defer)
        return Reserved(appointment=appointment)

    def confirm(self, appointment_id: str, defer: Defer | None = None) -> TransitionResult:
        """Commit a pending hold. Confirming a confirmed appointment is a no-op."""
        return self._transition(appointment_id, AppointmentStatus.confirmed, APPOINTMENT_CONFIRMED, defer)

    def cancel(self, appointment_id: str, defer: Defer | None = None) -> TransitionResult:
        """Cancel and free the slot. Cancelling a cancelled appointment is a no-op."""
        return self._transition(appointment_id, AppointmentStatus.cancelled, APPOINTMENT_CANCELLED, defer)

    def _transition(
        self,
        appointment_id: str,
        to_status: AppointmentStatus,
        event_type: str,
        defer: Defer | None,
    ) -> TransitionResult:
        now = self._clock()
        try:
            result = self._store.transition(appointment_id, to_status, now=now, timeout=self._timeout)
        except (StoreUnavailableError, ReservationTimeoutError) as e:
            self._logger.warning(
                "Booking store unavailable",
                extra={"appointment_id": appointment_id, "reason": str(e)},
            )
            return StoreUnavailable(detail=str(e))

        if result is None:
            return NotFound(appointment_id=appointment_id)

        appointment, changed = result
        if changed:
            self._logger.info(
                "Appointment status changed",
                extra={"appointment_id": appointment.id, "status": appointment.status.value},
            )
            self._publish(event_type, appointment, defer)
        return Transitioned(appointment=appointment, changed=changed)

    def _publish(self, event_type: str, appointment: Appointment, defer: Defer | None) -> None:
        if defer is None:
            self._publisher.publish(event_type, appointment)
        else:
            defer(self._publisher.publish, event_type, appointment)
