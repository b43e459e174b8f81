"""Eligibility and priority rules for payment-recovery outreach.

Every function here is pure: the same snapshot and ``now`` always produce the
same answer, so the scheduler can call them on every refresh and every tick.
"""

import math
from datetime import datetime, timedelta

from app.domain.enums import RiskCategory, RiskSeverity, ServiceCategory
from app.domain.snapshots import CustomerRiskSnapshot

FAILURE_CATEGORIES = frozenset({RiskCategory.FAILED_PAYMENT, RiskCategory.MULTIPLE_FAILURES})

_SERVICE_BASE_PRIORITY: dict[ServiceCategory, int] = {
    ServiceCategory.UTILITIES: 40,
    ServiceCategory.EDUCATION: 30,
    ServiceCategory.TELECOM: 20,
}
_DEFAULT_BASE_PRIORITY = 20

_RISK_MULTIPLIER: dict[str, float] = {
    RiskCategory.MULTIPLE_FAILURES.value: 2.0,
    RiskCategory.FAILED_PAYMENT.value: 1.5,
    RiskCategory.EXPIRING_CARD.value: 1.2,
}

# (exclusive lower bound in minor units, bonus), highest band first
_ACCOUNT_VALUE_BANDS: tuple[tuple[int, int], ...] = ((50000, 20), (20000, 10), (10000, 5))

_URGENCY_BASE: dict[str, int] = {
    RiskCategory.MULTIPLE_FAILURES.value: 85,
    RiskCategory.FAILED_PAYMENT.value: 70,
    RiskCategory.EXPIRING_CARD.value: 40,
}
_SEVERITY_MULTIPLIER: dict[RiskSeverity, float] = {
    RiskSeverity.LOW: 0.7,
    RiskSeverity.MEDIUM: 1.0,
    RiskSeverity.HIGH: 1.4,
    RiskSeverity.CRITICAL: 1.8,
}

_PAYMENT_ISSUES: dict[str, str] = {
    RiskCategory.EXPIRING_CARD.value: "card-expiring-soon",
    RiskCategory.MULTIPLE_FAILURES.value: "multiple-payment-failures",
}


def _round_half_up(score: float) -> int:
    return math.floor(score + 0.5)


def days_until_expiry(snapshot: CustomerRiskSnapshot, now: datetime) -> int | None:
    """Whole days from ``now`` to the first day of the card's expiry month.

    Returns None when the payment method carries no usable expiry date.
    """
    method = snapshot.payment_method
    if method is None or not method.expiry_month or not method.expiry_year:
        return None
    if not 1 <= method.expiry_month <= 12:
        return None
    expiry = datetime(method.expiry_year, method.expiry_month, 1, tzinfo=now.tzinfo)
    return math.ceil((expiry - now) / timedelta(days=1))


def should_trigger(snapshot: CustomerRiskSnapshot, now: datetime) -> bool:
    is_utilities = snapshot.service_category == ServiceCategory.UTILITIES

    if snapshot.risk_category == RiskCategory.EXPIRING_CARD.value:
        days = days_until_expiry(snapshot, now)
        if days is None:
            return False
        trigger_days = 7 if is_utilities else 5
        return 0 < days <= trigger_days

    if snapshot.risk_category in {category.value for category in FAILURE_CATEGORIES}:
        last_failure_at = snapshot.last_failure_at
        if last_failure_at is None:
            return True
        hours_since_failure = (now - last_failure_at) / timedelta(hours=1)
        return hours_since_failure <= (4 if is_utilities else 24)

    return False


def priority(snapshot: CustomerRiskSnapshot, now: datetime) -> int:
    score: float = _SERVICE_BASE_PRIORITY.get(
        snapshot.service_category, _DEFAULT_BASE_PRIORITY
    )
    score *= _RISK_MULTIPLIER.get(snapshot.risk_category, 1.0)

    for threshold, bonus in _ACCOUNT_VALUE_BANDS:
        if snapshot.account_value > threshold:
            score += bonus
            break

    if snapshot.failure_count >= 3:
        score += 15
    elif snapshot.failure_count >= 2:
        score += 10

    if snapshot.risk_category == RiskCategory.EXPIRING_CARD.value:
        days = days_until_expiry(snapshot, now)
        if days is not None and days <= 3:
            score += 15
        elif days is not None and days <= 7:
            score += 10

    return _round_half_up(min(100.0, max(0.0, score)))


def urgency_score(snapshot: CustomerRiskSnapshot) -> int:
    """Secondary risk signal reported alongside the queue; never used for ordering."""
    base = _URGENCY_BASE.get(snapshot.risk_category, 20)
    score = base * _SEVERITY_MULTIPLIER.get(snapshot.risk_severity, 1.0)
    score += min(snapshot.account_value / 10000, 25)
    score += min(snapshot.failure_count * 5, 15)
    score += min(len(snapshot.risk_factors) * 2, 10)
    return _round_half_up(min(100.0, score))


def payment_issue(risk_category: str) -> str:
    return _PAYMENT_ISSUES.get(risk_category, "payment-failure")
