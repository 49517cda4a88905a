from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta


@dataclass(frozen=True)
class Slot:
    """A candidate start time for a service. Identity is (service_id, start_instant)."""

    service_id: str
    start_instant: datetime  # UTC
    duration_minutes: int = field(compare=False)

    @property
    def end_instant(self) -> datetime:
        return self.start_instant + timedelta(minutes=self.duration_minutes)
