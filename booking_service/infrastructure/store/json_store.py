from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any
from urllib.parse import quote

from booking_service.application.exceptions import StoreUnavailableError
from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.domain.entities.appointment import (
    Appointment,
    AppointmentStatus,
    Contact,
    apply_transition,
)
from booking_service.infrastructure.store.locks import ServiceLocks


class JsonBookingStore(BookingStorePort):
    """
    One JSON file per service under `data_dir`.
    Writes go through a per-service lock and an atomic temp-file rename, so the
    store is safe across threads of a single process.
    """

    def __init__(self, data_dir: str = "./data/appointments") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._service_locks = ServiceLocks()
        self._logger = logging.getLogger(__name__)

    def _get_file_path(self, service_id: str) -> Path:
        """Get the file path for a service_id."""
        return self._data_dir / f"{quote(service_id, safe='')}.json"

    def _load_service_data(self, service_id: str) -> dict[str, Any]:
        """Load service data from its JSON file, return an empty document if missing."""
        file_path = self._get_file_path(service_id)
        if not file_path.exists():
            return {"service_id": service_id, "appointments": [], "version": 1}
        return self._read_file(file_path)

    def _read_file(self, file_path: Path) -> dict[str, Any]:
        # A corrupted file is an outage, never an empty calendar.
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            self._logger.error("Booking file unreadable", extra={"reason": f"{file_path.name}: {e}"})
            raise StoreUnavailableError(f"Cannot read {file_path}") from e
        appointments = data.setdefault("appointments", []) if isinstance(data, dict) else None
        if not isinstance(appointments, list) or not all(isinstance(item, dict) for item in appointments):
            self._logger.error("Booking file has unexpected layout", extra={"reason": file_path.name})
            raise StoreUnavailableError(f"Unexpected layout in {file_path}")
        data.setdefault("version", 1)
        return data

    def _save_service_data(self, service_id: str, data: dict[str, Any]) -> None:
        """Save service data to its JSON file atomically."""
        file_path = self._get_file_path(service_id)
        temp_path = file_path.with_suffix(".json.tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(file_path)
        except OSError as e:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    pass
            raise StoreUnavailableError(f"Cannot write {file_path}") from e

    def _serialize_appointment(self, appointment: Appointment) -> dict[str, Any]:
        contact = appointment.contact
        return {
            "id": appointment.id,
            "service_id": appointment.service_id,
            "start_instant": appointment.start_instant.isoformat(),
            "duration_minutes": appointment.duration_minutes,
            "contact": {
                "name": contact.name,
                "email": contact.email,
                "phone": contact.phone,
                "company": contact.company,
                "website": contact.website,
                "message": contact.message,
            },
            "source": appointment.source,
            "status": appointment.status.value,
            "created_at": appointment.created_at.isoformat(),
            "version": appointment.version,
            "hold_expires_at": appointment.hold_expires_at.isoformat() if appointment.hold_expires_at else None,
            "updated_at": appointment.updated_at.isoformat() if appointment.updated_at else None,
        }

    def _deserialize_appointment(self, data: dict[str, Any]) -> Appointment:
        try:
            contact = data.get("contact") or {}
            return Appointment(
                id=str(data["id"]),
                service_id=str(data["service_id"]),
                start_instant=_parse_instant(data["start_instant"]),
                duration_minutes=int(data["duration_minutes"]),
                contact=Contact(
                    name=contact.get("name", ""),
                    email=contact.get("email", ""),
                    phone=contact.get("phone", ""),
                    company=contact.get("company"),
                    website=contact.get("website"),
                    message=contact.get("message"),
                ),
                source=data.get("source", "widget"),
                status=AppointmentStatus(data.get("status", AppointmentStatus.confirmed.value)),
                created_at=_parse_instant(data["created_at"]),
                version=int(data.get("version", 1)),
                hold_expires_at=_parse_instant(data["hold_expires_at"]) if data.get("hold_expires_at") else None,
                updated_at=_parse_instant(data["updated_at"]) if data.get("updated_at") else None,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            self._logger.error("Booking record malformed", extra={"reason": f"{data!r:.200}: {e!r}"})
            raise StoreUnavailableError("Booking data is malformed") from e

    def _service_appointments(self, service_id: str) -> list[Appointment]:
        data = self._load_service_data(service_id)
        return [self._deserialize_appointment(item) for item in data["appointments"]]

    def insert_if_free(self, appointment: Appointment, now: datetime, timeout: float) -> bool:
        with self._service_locks.hold(appointment.service_id, timeout):
            data = self._load_service_data(appointment.service_id)
            for item in data["appointments"]:
                existing = self._deserialize_appointment(item)
                if existing.blocks_slot(now) and existing.overlaps(
                    appointment.start_instant, appointment.duration_minutes
                ):
                    return False
            data["appointments"].append(self._serialize_appointment(appointment))
            self._save_service_data(appointment.service_id, data)
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
            data = self._load_service_data(current.service_id)
            for index, item in enumerate(data["appointments"]):
                if item.get("id") != appointment_id:
                    continue
                updated, changed = apply_transition(self._deserialize_appointment(item), to_status, now)
                if changed:
                    data["appointments"][index] = self._serialize_appointment(updated)
                    self._save_service_data(current.service_id, data)
                return updated, changed
        return None

    def get(self, appointment_id: str) -> Appointment | None:
        # Scans every service file; fine for the handful of services a business publishes.
        for appointment in self._iter_all():
            if appointment.id == appointment_id:
                return appointment
        return None

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
        return sorted(
            (
                a
                for a in self._iter_all()
                if (source is None or a.source == source) and (status is None or a.status == status)
            ),
            key=lambda a: a.start_instant,
        )

    def _iter_all(self) -> list[Appointment]:
        try:
            paths = sorted(self._data_dir.glob("*.json"))
        except OSError as e:
            raise StoreUnavailableError(f"Cannot list {self._data_dir}") from e
        appointments: list[Appointment] = []
        for file_path in paths:
            data = self._read_file(file_path)
            appointments.extend(self._deserialize_appointment(item) for item in data["appointments"])
        return appointments


def _parse_instant(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"Instant without offset: {value!r}")
    return parsed
