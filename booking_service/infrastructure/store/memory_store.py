from __future__ import annotations

import threading
from datetime import datetime

from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.domain.entities.appointment import Appointment, AppointmentStatus, apply_transition
from booking_service.infrastructure.store.locks import ServiceLocks


class MemoryBookingStore(BookingStorePort):
    def __init__(self) -> None:
        self._appointments: dict[str, Appointment] = {}
        self._by_service: dict[str, list[str]] = {}
        self._service_locks = ServiceLocks()
        self._index_lock = threading.Lock()  # guards dict mutation against concurrent readers

    def insert_if_free(self, appointment: Appointment, now: datetime, timeout: float) -> bool:
        with self._service_locks.hold(appointment.service_id, timeout):
            for existing in self._service_appointments(appointment.service_id):
                if existing.blocks_slot(now) and existing.overlaps(
                    appointment.start_instant, appointment.duration_minutes
                ):
                    return False
            with self._index_lock:
                self._appointments[appointment.id] = appointment
                self._by_service.setdefault(appointment.service_id, []).append(appointment.id)
            return True

    def transition(
        self,
        appointment_id: str,
        to_status: AppointmentStatus,
        now: datetime,
        timeout: float,
    ) -> tuple[Appointment, bool] | None:
        current = self.get(appointment_id)
        if current is None:
            return None
        with self._service_locks.hold(current.service_id, timeout):
            current = self._appointments[appointment_id]
            updated, changed = apply_transition(current, to_status, now)
            if changed:
                with self._index_lock:
                    self._appointments[appointment_id] = updated
            return updated, changed

    def get(self, appointment_id: str) -> Appointment | None:
        with self._index_lock:
            return self._appointments.get(appointment_id)

    def list_for_service(self, service_id: str, start: datetime, end: datetime) -> list[Appointment]:
        return [
            a
            for a in self._service_appointments(service_id)
            if a.start_instant < end and start < a.end_instant
        ]

    def list_all(
        self,
        source: str | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[Appointment]:
        with self._index_lock:
            appointments = list(self._appointments.values())
        return sorted(
            (
                a
                for a in appointments
                if (source is None or a.source == source) and (status is None or a.status == status)
            ),
            key=lambda a: a.start_instant,
        )

    def _service_appointments(self, service_id: str) -> list[Appointment]:
        with self._index_lock:
            ids = list(self._by_service.get(service_id, []))
            return [self._appointments[i] for i in ids]
