from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from booking_service.application.exceptions import ConfigurationError


WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class BusinessHoursConfig:
    time_zone: str
    working_days: frozenset[int]  # 0 = Monday
    day_start: time
    day_end: time
    min_lead_minutes: int = 30
    slot_granularity_minutes: int = 30
    zone: ZoneInfo = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            zone = ZoneInfo(self.time_zone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown time zone: {self.time_zone!r}") from e
        object.__setattr__(self, "zone", zone)

        if not self.working_days:
            raise ConfigurationError("At least one working day is required")
        if any(day not in range(7) for day in self.working_days):
            raise ConfigurationError(f"Working days must be weekday numbers 0-6, got {sorted(self.working_days)}")
        if self.day_start >= self.day_end:
            raise ConfigurationError(f"dayStart {self.day_start} must be before dayEnd {self.day_end}")
        if self.min_lead_minutes < 0:
            raise ConfigurationError("minLeadMinutes must be >= 0")
        if self.slot_granularity_minutes <= 0:
            raise ConfigurationError("slotGranularityMinutes must be positive")
        if self.window_minutes % self.slot_granularity_minutes != 0:
            raise ConfigurationError(
                f"slotGranularityMinutes {self.slot_granularity_minutes} does not divide "
                f"the {self.window_minutes}-minute working window"
            )

    @property
    def window_minutes(self) -> int:
        start = datetime.combine(datetime.min.date(), self.day_start)
        end = datetime.combine(datetime.min.date(), self.day_end)
        return int((end - start).total_seconds() // 60)

    @property
    def working_day_names(self) -> list[str]:
        return [WEEKDAY_NAMES[day] for day in sorted(self.working_days)]

    @classmethod
    def from_strings(
        cls,
        time_zone: str,
        working_days: str,
        day_start: str,
        day_end: str,
        min_lead_minutes: int,
        slot_granularity_minutes: int,
    ) -> BusinessHoursConfig:
        """Build a config from the flat string form used by settings and catalog files."""
        return cls(
            time_zone=time_zone,
            working_days=parse_working_days(working_days),
            day_start=_parse_time_of_day(day_start, "dayStart"),
            day_end=_parse_time_of_day(day_end, "dayEnd"),
            min_lead_minutes=min_lead_minutes,
            slot_granularity_minutes=slot_granularity_minutes,
        )


def parse_working_days(value: str) -> frozenset[int]:
    days: set[int] = set()
    for raw in value.split(","):
        token = raw.strip().lower()
        if not token:
            continue
        matches = [i for i, name in enumerate(WEEKDAY_NAMES) if len(token) >= 3 and name.startswith(token)]
        if len(matches) != 1:
            raise ConfigurationError(f"Unknown working day: {raw.strip()!r}")
        days.add(matches[0])
    return frozenset(days)


def _parse_time_of_day(value: str, name: str) -> time:
    try:
        return time.fromisoformat(value.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be HH:MM, got {value!r}") from e
