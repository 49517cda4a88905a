from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from booking_service.application.exceptions import ReservationTimeoutError


class ServiceLocks:
    """One lock per service id; the serialization point for writes to that service."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._lock_lock = threading.Lock()  # guards the locks dict

    def _get_lock(self, service_id: str) -> threading.Lock:
        with self._lock_lock:
            if service_id not in self._locks:
                self._locks[service_id] = threading.Lock()
            return self._locks[service_id]

    @contextmanager
    def hold(self, service_id: str, timeout: float) -> Iterator[None]:
        lock = self._get_lock(service_id)
        if not lock.acquire(timeout=timeout):
            raise ReservationTimeoutError(f"Timed out waiting for service {service_id!r}")
        try:
            yield
        finally:
            lock.release()
