from __future__ import annotations

import logging

import httpx

from booking_service.application.ports.event_publisher import EventPublisherPort
from booking_service.domain.entities.appointment import Appointment
from booking_service.infrastructure.events.serialization import appointment_payload


class WebhookEventPublisher(EventPublisherPort):
    """POSTs appointment events to the CRM / notification subscriber."""

    def __init__(self, endpoint: str, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        self._endpoint = endpoint
        self._client = client or httpx.Client(timeout=timeout)
        self._logger = logging.getLogger(__name__)

    def publish(self, event_type: str, appointment: Appointment) -> bool:
        payload = {"type": event_type, "appointment": appointment_payload(appointment)}
        try:
            resp = self._client.post(self._endpoint, json=payload)
        except httpx.HTTPError as e:
            self._logger.error(
                "Event delivery failed",
                extra={"appointment_id": appointment.id, "reason": f"{event_type}: {e}"},
            )
            return False

        if resp.status_code >= 400:
            self._logger.error(
                "Event subscriber rejected event",
                extra={
                    "appointment_id": appointment.id,
                    "status": resp.status_code,
                    "reason": event_type,
                },
            )
            return False

        self._logger.info("Event delivered", extra={"appointment_id": appointment.id, "reason": event_type})
        return True
