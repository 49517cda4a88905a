from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from booking_service.domain.entities.appointment import Appointment, AppointmentStatus


class BookingStorePort(ABC):
    @abstractmethod
    def insert_if_free(self, appointment: Appointment, now: datetime, timeout: float) -> bool:
        """
        Atomically insert the appointment unless a blocking appointment of the same
        service overlaps it. Returns False on overlap.
        Raises ReservationTimeoutError if the per-service lock is not acquired in time
        and StoreUnavailableError if storage fails.
        """
        raise NotImplementedError

    @abstractmethod
    def transition(
        self,
        appointment_id: str,
        to_status: AppointmentStatus,
        now: datetime,
        timeout: float,
    ) -> tuple[Appointment, bool] | None:
        """
        Atomically move an appointment to `to_status`.
        Returns (appointment, changed) or None if the appointment does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, appointment_id: str) -> Appointment | None:
        raise NotImplementedError

    @abstractmethod
    def list_for_service(self, service_id: str, start: datetime, end: datetime) -> list[Appointment]:
        """Appointments of a service (any status) overlapping [start, end)."""
        raise NotImplementedError

    @abstractmethod
    def list_all(
        self,
        source: str | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[Appointment]:
        raise NotImplementedError
