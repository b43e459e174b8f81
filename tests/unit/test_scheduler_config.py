import pytest

from app.domain.exceptions import InvalidSchedulerConfigError
from app.domain.scheduler_config import SchedulerConfig


def test_defaults() -> None:
    config = SchedulerConfig()

    assert config.as_dict() == {
        "enabled": False,
        "max_concurrent_sessions": 3,
        "tick_interval_ms": 30000,
        "max_contacts_per_day": 1,
        "quiet_hours_start": 22,
        "quiet_hours_end": 8,
        "min_hours_between_contacts": 4,
    }


def test_merge_returns_new_config() -> None:
    config = SchedulerConfig()

    merged = config.merge({"max_concurrent_sessions": 5, "quiet_hours_start": 21})

    assert merged.max_concurrent_sessions == 5
    assert merged.quiet_hours_start == 21
    assert config.max_concurrent_sessions == 3


@pytest.mark.parametrize(
    ("changes", "field"),
    [
        ({"tick_interval_ms": -1}, "tick_interval_ms"),
        ({"tick_interval_ms": 0}, "tick_interval_ms"),
        ({"max_concurrent_sessions": -2}, "max_concurrent_sessions"),
        ({"max_contacts_per_day": "3"}, "max_contacts_per_day"),
        ({"quiet_hours_start": 24}, "quiet_hours_start"),
        ({"quiet_hours_end": -1}, "quiet_hours_end"),
        ({"min_hours_between_contacts": -0.5}, "min_hours_between_contacts"),
        ({"enabled": "yes"}, "enabled"),
        ({"max_concurrent_sessions": True}, "max_concurrent_sessions"),
        ({"retry_forever": True}, "retry_forever"),
    ],
)
def test_merge_rejects_invalid_values(changes: dict, field: str) -> None:
    with pytest.raises(InvalidSchedulerConfigError) as exc_info:
        SchedulerConfig().merge(changes)

    assert exc_info.value.field == field


def test_zero_concurrency_is_allowed() -> None:
    assert SchedulerConfig(max_concurrent_sessions=0).max_concurrent_sessions == 0
