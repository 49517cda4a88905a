from __future__ import annotations

from datetime import datetime, time, timezone

import pytest

from booking_service.application.use_cases.reservation import ReservationCoordinator
from booking_service.domain.entities.appointment import Contact
from booking_service.domain.entities.business_hours import BusinessHoursConfig
from booking_service.infrastructure.catalog.service_catalog_store import ServiceCatalogStore
from booking_service.infrastructure.events.logging_publisher import LoggingEventPublisher
from booking_service.infrastructure.store.memory_store import MemoryBookingStore


# Thursday 2025-07-10 10:00 in New York.
NOW = datetime(2025, 7, 10, 14, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingPublisher(LoggingEventPublisher):
    """Logs like the default publisher and remembers what it published."""

    def __init__(self) -> None:
        super().__init__()
        self.published: list[tuple[str, str]] = []

    def publish(self, event_type: str, appointment) -> bool:
        self.published.append((event_type, appointment.id))
        return super().publish(event_type, appointment)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def hours() -> BusinessHoursConfig:
    """Mon-Fri 09:00-18:00 New York, 30-minute grid, 30-minute lead."""
    return BusinessHoursConfig(
        time_zone="America/New_York",
        working_days=frozenset({0, 1, 2, 3, 4}),
        day_start=time(9, 0),
        day_end=time(18, 0),
        min_lead_minutes=30,
        slot_granularity_minutes=30,
    )


@pytest.fixture
def catalog() -> ServiceCatalogStore:
    return ServiceCatalogStore()


@pytest.fixture
def store() -> MemoryBookingStore:
    return MemoryBookingStore()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def coordinator(store, catalog, hours, publisher, clock) -> ReservationCoordinator:
    return ReservationCoordinator(
        store=store,
        catalog=catalog,
        business_hours=hours,
        publisher=publisher,
        reserve_timeout_seconds=2.0,
        pending_hold_minutes=10,
        clock=clock,
    )


@pytest.fixture
def contact() -> Contact:
    return Contact(name="Jane Doe", email="jane@example.com", phone="+1 555 010 2030", company="Acme")
