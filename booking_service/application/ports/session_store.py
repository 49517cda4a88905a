from abc import ABC, abstractmethod
from datetime import datetime

from booking_service.domain.entities.booking_session import BookingSession


class SessionStorePort(ABC):
    @abstractmethod
    def get(self, session_id: str, now: datetime) -> BookingSession | None:
        """Returns None for unknown sessions and sessions idle past the timeout."""
        raise NotImplementedError

    @abstractmethod
    def save(self, session: BookingSession) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, session_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self, now: datetime) -> int:
        raise NotImplementedError
