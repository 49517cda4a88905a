"""
HTTP-level tests for the booking API, run in-process with dependencies pinned to a fixed clock.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

import booking_service.main
from booking_service.application.exceptions import ConfigurationError
from booking_service.application.ports.event_publisher import APPOINTMENT_CANCELLED, APPOINTMENT_CONFIRMED
from booking_service.application.use_cases.booking_session import BookingSessionUseCase
from booking_service.application.use_cases.embed_config import EmbedConfigEmitter, Theming
from booking_service.infrastructure.store.session_store import MemorySessionStore
from booking_service.main import app
from booking_service.wiring.dependencies import (
    get_booking_session_use_case,
    get_booking_store,
    get_business_hours,
    get_clock,
    get_embed_config_emitter,
    get_reservation_coordinator,
    get_service_catalog,
    get_session_store,
)


MONDAY_10AM = "2025-07-14T14:00:00Z"

CONTACT = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "phone": "+1 555 010 2030",
    "company": "Acme",
    "website": "https://acme.example.com",
    "message": "Looking to grow organic traffic",
}


def instant(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(timezone.utc)


@pytest.fixture
def client(store, catalog, hours, coordinator, clock):
    sessions = MemorySessionStore(idle_minutes=30)
    theming = Theming(primary_color="#e45c2b", company_name="TrafficBoost")

    app.dependency_overrides.update(
        {
            get_clock: lambda: clock,
            get_business_hours: lambda: hours,
            get_service_catalog: lambda: catalog,
            get_booking_store: lambda: store,
            get_session_store: lambda: sessions,
            get_reservation_coordinator: lambda: coordinator,
            get_booking_session_use_case: lambda: BookingSessionUseCase(
                catalog=catalog, store=store, coordinator=coordinator, business_hours=hours, clock=clock
            ),
            get_embed_config_emitter: lambda: EmbedConfigEmitter(
                catalog=catalog,
                business_hours=hours,
                api_base_url="https://booking.example.com",
                theming=theming,
            ),
        }
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def book(client: TestClient, start: str = MONDAY_10AM, **extra):
    body = {"serviceId": "demo", "startInstant": start, "contact": CONTACT}
    body.update(extra)
    return client.post("/appointments", json=body)


def demo_availability(client: TestClient) -> list[datetime]:
    response = client.get("/availability", params={"serviceId": "demo", "rangeStart": "2025-07-14"})
    assert response.status_code == 200
    return [instant(slot["startInstant"]) for slot in response.json()]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_services_are_listed(client):
    services = client.get("/services").json()

    assert [s["id"] for s in services] == ["consultation", "demo", "audit", "strategy"]
    assert services[0]["durationMinutes"] == 30


def test_availability_for_open_day(client):
    response = client.get("/availability", params={"serviceId": "consultation", "rangeStart": "2025-07-14"})

    assert response.status_code == 200
    slots = response.json()
    assert len(slots) == 18
    assert instant(slots[0]["startInstant"]) == datetime(2025, 7, 14, 13, 0, tzinfo=timezone.utc)
    assert instant(slots[-1]["startInstant"]) == datetime(2025, 7, 14, 21, 30, tzinfo=timezone.utc)
    assert slots[0]["durationMinutes"] == 30


def test_availability_rejects_bad_queries(client):
    unknown = client.get("/availability", params={"serviceId": "yoga", "rangeStart": "2025-07-14"})
    assert unknown.status_code == 422
    assert unknown.json()["fields"] == ["serviceId"]

    missing = client.get("/availability", params={"serviceId": "demo"})
    assert missing.status_code == 422
    assert missing.json() == {"reason": "validation_error", "fields": ["rangeStart"]}

    too_long = client.get(
        "/availability",
        params={"serviceId": "demo", "rangeStart": "2025-07-14", "rangeEnd": "2025-09-14"},
    )
    assert too_long.status_code == 422
    assert too_long.json()["fields"] == ["rangeEnd"]

    garbled = client.get("/availability", params={"serviceId": "demo", "rangeStart": "next monday"})
    assert garbled.status_code == 422
    assert garbled.json()["fields"] == ["rangeStart"]


def test_double_booking_same_slot(client):
    first = book(client)
    second = book(client)

    assert first.status_code == 201
    assert first.json()["status"] == "confirmed"
    assert second.status_code == 409
    assert second.json() == {"reason": "slot_taken"}


def test_cancel_makes_slot_available_again(client):
    appointment_id = book(client).json()["appointmentId"]
    assert instant(MONDAY_10AM) not in demo_availability(client)

    cancelled = client.post(f"/appointments/{appointment_id}/cancel")
    assert cancelled.status_code == 200
    assert cancelled.json() == {"appointmentId": appointment_id, "status": "cancelled"}
    assert instant(MONDAY_10AM) in demo_availability(client)

    again = client.post(f"/appointments/{appointment_id}/cancel")
    assert again.status_code == 200
    assert again.json()["status"] == "cancelled"

    assert client.post("/appointments/missing/cancel").status_code == 404
    assert client.post(f"/appointments/{appointment_id}/confirm").json()["reason"] == "invalid_state"


def test_create_appointment_validation(client):
    bad_contact = client.post(
        "/appointments",
        json={"serviceId": "demo", "startInstant": MONDAY_10AM, "contact": {"name": "Jane", "email": "nope"}},
    )
    assert bad_contact.status_code == 422
    assert bad_contact.json()["fields"] == ["contact.email", "contact.phone"]

    off_grid = book(client, start="2025-07-14T14:10:00Z")
    assert off_grid.status_code == 422
    assert off_grid.json()["fields"] == ["startInstant"]

    no_service = client.post("/appointments", json={"startInstant": MONDAY_10AM, "contact": CONTACT})
    assert no_service.status_code == 422
    assert no_service.json()["fields"] == ["serviceId"]


def test_hold_then_confirm(client):
    held = book(client, hold=True)
    assert held.status_code == 201
    assert held.json()["status"] == "pending"

    appointment_id = held.json()["appointmentId"]
    confirmed = client.post(f"/appointments/{appointment_id}/confirm")
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"


def test_appointments_can_be_read_back(client):
    appointment_id = book(client, source="partner-site").json()["appointmentId"]
    book(client, start="2025-07-14T16:00:00Z")

    detail = client.get(f"/appointments/{appointment_id}").json()
    assert detail["serviceId"] == "demo"
    assert detail["contact"]["email"] == "jane@example.com"
    assert detail["version"] == 1

    from_partner = client.get("/appointments", params={"source": "partner-site"}).json()
    assert [a["appointmentId"] for a in from_partner] == [appointment_id]
    assert len(client.get("/appointments", params={"status": "confirmed"}).json()) == 2

    assert client.get("/appointments/missing").status_code == 404


def test_session_walkthrough(client):
    started = client.post("/sessions", json={"source": "partner-site"})
    assert started.status_code == 201
    session = started.json()
    assert session["step"] == "calendar"
    assert session["action"] == "choose_service"
    session_id = session["sessionId"]

    chosen = client.post(f"/sessions/{session_id}/service", json={"serviceId": "demo"}).json()
    assert chosen["action"] == "choose_date"

    dated = client.post(f"/sessions/{session_id}/date", json={"date": "2025-07-14"}).json()
    assert dated["step"] == "time"
    assert dated["selectedDate"] == "2025-07-14"
    assert instant(MONDAY_10AM) in [instant(s["startInstant"]) for s in dated["slots"]]

    picked = client.post(f"/sessions/{session_id}/slot", json={"startInstant": MONDAY_10AM}).json()
    assert picked["step"] == "form"
    assert instant(picked["selectedSlot"]["startInstant"]) == instant(MONDAY_10AM)

    resumed = client.get(f"/sessions/{session_id}").json()
    assert resumed["action"] == "resume"
    assert resumed["step"] == "form"

    done = client.post(f"/sessions/{session_id}/contact", json={"contact": CONTACT})
    assert done.status_code == 200
    assert done.json()["step"] == "confirmation"
    appointment_id = done.json()["appointmentId"]

    assert client.get(f"/appointments/{appointment_id}").json()["source"] == "partner-site"
    assert client.get(f"/sessions/{session_id}").status_code == 404


def test_session_date_can_carry_service(client):
    session_id = client.post("/sessions").json()["sessionId"]

    dated = client.post(f"/sessions/{session_id}/date", json={"date": "2025-07-14", "serviceId": "audit"})

    assert dated.status_code == 200
    assert dated.json()["selectedServiceId"] == "audit"


def test_session_conflict_returns_to_time_step(client):
    session_id = client.post("/sessions").json()["sessionId"]
    client.post(f"/sessions/{session_id}/service", json={"serviceId": "demo"})
    client.post(f"/sessions/{session_id}/date", json={"date": "2025-07-14"})
    client.post(f"/sessions/{session_id}/slot", json={"startInstant": MONDAY_10AM})

    assert book(client).status_code == 201

    conflict = client.post(f"/sessions/{session_id}/contact", json={"contact": CONTACT})
    assert conflict.status_code == 409
    body = conflict.json()
    assert body["reason"] == "slot_taken"
    assert body["session"]["step"] == "time"
    assert instant(MONDAY_10AM) not in [instant(s["startInstant"]) for s in body["session"]["slots"]]

    assert client.get(f"/sessions/{session_id}").json()["step"] == "time"


def test_session_errors(client):
    assert client.post("/sessions/unknown/back").status_code == 404

    session_id = client.post("/sessions").json()["sessionId"]

    wrong_step = client.post(f"/sessions/{session_id}/slot", json={"startInstant": MONDAY_10AM})
    assert wrong_step.status_code == 409
    assert wrong_step.json()["reason"] == "invalid_session_state"

    client.post(f"/sessions/{session_id}/service", json={"serviceId": "demo"})
    weekend = client.post(f"/sessions/{session_id}/date", json={"date": "2025-07-12"})
    assert weekend.status_code == 422
    assert weekend.json()["fields"] == ["date"]

    assert client.get(f"/sessions/{session_id}").json()["step"] == "calendar"


def test_embed_config(client):
    response = client.get("/embed-config", params={"domain": "partner.example.org"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["schemaVersion"] == 1
    assert payload["businessHours"]["timeZone"] == "America/New_York"
    assert "data-config-url" in payload["embedCode"]

    missing = client.get("/embed-config")
    assert missing.status_code == 422
    assert missing.json()["fields"] == ["domain"]


def test_embed_config_reports_broken_configuration(client, catalog, hours):
    app.dependency_overrides[get_embed_config_emitter] = lambda: EmbedConfigEmitter(
        catalog=catalog,
        business_hours=hours,
        api_base_url="https://booking.example.com",
        theming=Theming(primary_color="orange"),
    )

    response = client.get("/embed-config", params={"domain": "partner.example.org"})

    assert response.status_code == 500
    assert response.json()["reason"] == "configuration_error"


def test_startup_refuses_broken_embed_configuration(monkeypatch, catalog, hours):
    monkeypatch.setattr(
        booking_service.main,
        "get_embed_config_emitter",
        lambda: EmbedConfigEmitter(
            catalog=catalog,
            business_hours=hours,
            api_base_url="https://booking.example.com",
            theming=Theming(primary_color="#e45c2b"),
            service_ids=["yoga"],
        ),
    )

    with pytest.raises(ConfigurationError):
        with TestClient(app):
            pass


def test_startup_with_default_configuration():
    with TestClient(app) as started:
        assert started.get("/health").status_code == 200


def test_booking_events_are_published_after_the_response(client, publisher):
    appointment_id = book(client).json()["appointmentId"]
    client.post(f"/appointments/{appointment_id}/cancel")

    assert publisher.published == [
        (APPOINTMENT_CONFIRMED, appointment_id),
        (APPOINTMENT_CANCELLED, appointment_id),
    ]
