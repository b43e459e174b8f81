from collections.abc import Callable
from datetime import datetime

import pytest

from app.domain.enums import InterventionOutcome, RiskSeverity
from app.domain.snapshots import (
    CustomerRiskSnapshot,
    InterventionRecord,
    PaymentMethodSnapshot,
)
from tests.fakes import FakeClock

SnapshotFactory = Callable[..., CustomerRiskSnapshot]


@pytest.fixture
def make_snapshot() -> SnapshotFactory:
    def _make(
        customer_id: str = "cust-1",
        *,
        name: str = "Maria Silva",
        provider: str = "Vivo",
        risk_category: str = "failed-payment",
        account_value: int = 0,
        severity: RiskSeverity = RiskSeverity.MEDIUM,
        failure_count: int = 1,
        last_failure_at: datetime | None = None,
        expiry: tuple[int, int] | None = None,
        interventions: tuple[tuple[datetime, InterventionOutcome], ...] = (),
        risk_factors: tuple[str, ...] = (),
    ) -> CustomerRiskSnapshot:
        expiry_month, expiry_year = expiry if expiry else (None, None)
        return CustomerRiskSnapshot(
            id=customer_id,
            name=name,
            service_provider=provider,
            risk_category=risk_category,
            account_value=account_value,
            risk_severity=severity,
            payment_method=PaymentMethodSnapshot(
                card_type="visa",
                last_four_digits="4242",
                expiry_month=expiry_month,
                expiry_year=expiry_year,
                failure_count=failure_count,
                last_failure_at=last_failure_at,
            ),
            interventions=tuple(
                InterventionRecord(occurred_at=occurred_at, outcome=outcome)
                for occurred_at, outcome in interventions
            ),
            risk_factors=risk_factors,
        )

    return _make


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
