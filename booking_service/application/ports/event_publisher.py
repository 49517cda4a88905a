from abc import ABC, abstractmethod

from booking_service.domain.entities.appointment import Appointment


APPOINTMENT_CONFIRMED = "AppointmentConfirmed"
APPOINTMENT_CANCELLED = "AppointmentCancelled"


class EventPublisherPort(ABC):
    @abstractmethod
    def publish(self, event_type: str, appointment: Appointment) -> bool:
        """Publish an appointment event. Returns True if delivered."""
        raise NotImplementedError
