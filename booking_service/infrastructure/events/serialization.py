from __future__ import annotations

from typing import Any

from booking_service.domain.entities.appointment import Appointment


def appointment_payload(appointment: Appointment) -> dict[str, Any]:
    contact = appointment.contact
    return {
        "appointmentId": appointment.id,
        "serviceId": appointment.service_id,
        "startInstant": appointment.start_instant.isoformat(),
        "durationMinutes": appointment.duration_minutes,
        "status": appointment.status.value,
        "source": appointment.source,
        "version": appointment.version,
        "contact": {
            "name": contact.name,
            "email": contact.email,
            "phone": contact.phone,
            "company": contact.company,
            "website": contact.website,
            "message": contact.message,
        },
    }
