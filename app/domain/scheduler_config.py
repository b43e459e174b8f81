from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from app.domain.exceptions import InvalidSchedulerConfigError


@dataclass(frozen=True, slots=True)
class SchedulerConfig:
    enabled: bool = False
    max_concurrent_sessions: int = 3
    tick_interval_ms: int = 30000
    # Counts contacts since the customer was enqueued, not per calendar day.
    max_contacts_per_day: int = 1
    quiet_hours_start: int = 22
    quiet_hours_end: int = 8
    min_hours_between_contacts: float = 4

    def __post_init__(self) -> None:
        if not isinstance(self.enabled, bool):
            raise InvalidSchedulerConfigError("enabled", "must be a boolean")
        for name in ("max_concurrent_sessions", "tick_interval_ms", "max_contacts_per_day"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidSchedulerConfigError(name, "must be an integer")
            if value < 0:
                raise InvalidSchedulerConfigError(name, "must not be negative")
        if self.tick_interval_ms == 0:
            raise InvalidSchedulerConfigError("tick_interval_ms", "must be positive")
        for name in ("quiet_hours_start", "quiet_hours_end"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 23:
                raise InvalidSchedulerConfigError(name, "must be an hour between 0 and 23")
        if isinstance(self.min_hours_between_contacts, bool) or not isinstance(
            self.min_hours_between_contacts, (int, float)
        ):
            raise InvalidSchedulerConfigError("min_hours_between_contacts", "must be a number")
        if self.min_hours_between_contacts < 0:
            raise InvalidSchedulerConfigError(
                "min_hours_between_contacts", "must not be negative"
            )

    def merge(self, changes: Mapping[str, Any]) -> "SchedulerConfig":
        known = {item.name for item in fields(self)}
        for name in changes:
            if name not in known:
                raise InvalidSchedulerConfigError(name, "unknown setting")
        return replace(self, **changes)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
