from __future__ import annotations

import logging

from booking_service.application.ports.event_publisher import EventPublisherPort
from booking_service.domain.entities.appointment import Appointment


class LoggingEventPublisher(EventPublisherPort):
    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def publish(self, event_type: str, appointment: Appointment) -> bool:
        self._logger.info(
            "Event not delivered (no webhook configured)",
            extra={"appointment_id": appointment.id, "reason": event_type},
        )
        return True
