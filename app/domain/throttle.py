from collections.abc import Collection
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from app.domain.enums import InterventionOutcome
from app.domain.outreach import QueueEntry
from app.domain.policy import should_trigger
from app.domain.scheduler_config import SchedulerConfig

FAILED_OUTCOME_COOLDOWN = timedelta(hours=24)
_COOLDOWN_OUTCOMES = frozenset({InterventionOutcome.FAILED, InterventionOutcome.NO_ANSWER})


class DenyReason(str, Enum):
    NOT_TRIGGERED = "not_triggered"
    CONTACT_LIMIT_REACHED = "contact_limit_reached"
    MIN_GAP_NOT_ELAPSED = "min_gap_not_elapsed"
    ACTIVE_SESSION = "active_session"
    FAILED_OUTCOME_COOLDOWN = "failed_outcome_cooldown"


@dataclass(frozen=True, slots=True)
class ThrottleDecision:
    allowed: bool
    reason: DenyReason | None = None


ALLOWED = ThrottleDecision(allowed=True)


def can_contact(
    entry: QueueEntry,
    config: SchedulerConfig,
    now: datetime,
    active_customer_ids: Collection[str],
) -> ThrottleDecision:
    """Checks run in a fixed order and the first failure wins."""
    snapshot = entry.snapshot

    if not should_trigger(snapshot, now):
        return ThrottleDecision(False, DenyReason.NOT_TRIGGERED)

    if entry.contact_attempts >= config.max_contacts_per_day:
        return ThrottleDecision(False, DenyReason.CONTACT_LIMIT_REACHED)

    if entry.last_contacted_at is not None:
        elapsed_hours = (now - entry.last_contacted_at) / timedelta(hours=1)
        if elapsed_hours < config.min_hours_between_contacts:
            return ThrottleDecision(False, DenyReason.MIN_GAP_NOT_ELAPSED)

    if snapshot.id in active_customer_ids:
        return ThrottleDecision(False, DenyReason.ACTIVE_SESSION)

    latest = snapshot.latest_intervention
    if (
        latest is not None
        and latest.outcome in _COOLDOWN_OUTCOMES
        and now - latest.occurred_at < FAILED_OUTCOME_COOLDOWN
    ):
        return ThrottleDecision(False, DenyReason.FAILED_OUTCOME_COOLDOWN)

    return ALLOWED


def is_quiet_hour(config: SchedulerConfig, local_now: datetime) -> bool:
    hour = local_now.hour
    return hour >= config.quiet_hours_start or hour < config.quiet_hours_end
