#!/usr/bin/env python3
"""Smoke check for a running booking API: availability, double booking and cancellation."""

import sys
from datetime import date, timedelta

import httpx


BASE_URL = "http://127.0.0.1:8000"

CONTACT = {
    "name": "Smoke Test",
    "email": "smoke@example.com",
    "phone": "+1 555 010 2030",
    "message": "Automated smoke check",
}


def next_weekday(start: date) -> date:
    day = start + timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


def check_availability(service_id: str, day: date) -> list[dict]:
    print("=" * 60)
    print(f"GET /availability serviceId={service_id} rangeStart={day.isoformat()}")
    print("=" * 60)

    response = httpx.get(
        f"{BASE_URL}/availability",
        params={"serviceId": service_id, "rangeStart": day.isoformat()},
        timeout=10.0,
    )
    response.raise_for_status()
    slots = response.json()
    print(f"✅ {len(slots)} slots")
    for slot in slots[:5]:
        print(f"  {slot['startInstant']} ({slot['durationMinutes']} min)")
    return slots


def check_double_booking(service_id: str, start_instant: str) -> str | None:
    print("\n" + "=" * 60)
    print(f"POST /appointments twice for {start_instant}")
    print("=" * 60)

    payload = {"serviceId": service_id, "startInstant": start_instant, "contact": CONTACT, "source": "smoke"}
    first = httpx.post(f"{BASE_URL}/appointments", json=payload, timeout=10.0)
    second = httpx.post(f"{BASE_URL}/appointments", json=payload, timeout=10.0)

    if first.status_code != 201:
        print(f"❌ First booking failed: {first.status_code} {first.text}")
        return None
    print(f"✅ First booking: {first.json()}")

    if second.status_code == 409:
        print(f"✅ Second booking rejected: {second.json()}")
    else:
        print(f"❌ Second booking returned {second.status_code}: {second.text}")
    return first.json()["appointmentId"]


def check_cancel(appointment_id: str) -> bool:
    print("\n" + "=" * 60)
    print(f"POST /appointments/{appointment_id}/cancel")
    print("=" * 60)

    try:
        response = httpx.post(f"{BASE_URL}/appointments/{appointment_id}/cancel", timeout=10.0)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        print(f"❌ HTTP Error: {e.response.status_code}")
        print(f"Response: {e.response.text}")
        return False
    print(f"✅ {response.json()}")
    return True


def main():
    print("\n🚀 Smoke checking booking API\n")

    try:
        httpx.get(f"{BASE_URL}/health", timeout=5.0).raise_for_status()
        print("✅ Server is running\n")
    except httpx.HTTPError:
        print("❌ Server is not running!")
        print("   Please start it with: uvicorn booking_service.main:app --reload --port 8000")
        sys.exit(1)

    service_id = "consultation"
    slots = check_availability(service_id, next_weekday(date.today()))
    if not slots:
        print("⚠️  No availability, nothing to book")
        return

    appointment_id = check_double_booking(service_id, slots[0]["startInstant"])
    if appointment_id:
        check_cancel(appointment_id)

    print("\n" + "=" * 60)
    print("✅ Smoke check complete!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
