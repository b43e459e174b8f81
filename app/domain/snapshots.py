from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from app.domain.enums import InterventionOutcome, RiskSeverity, ServiceCategory
from app.domain.exceptions import IncompleteSnapshotError
from app.domain.providers import resolve_service_category

_REQUIRED_FIELDS = ("id", "name", "service_provider", "risk_category")


def _raw_value(value: Any) -> str:
    return str(getattr(value, "value", value))


def as_aware(value: datetime | str | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True, slots=True)
class PaymentMethodSnapshot:
    card_type: str = ""
    last_four_digits: str = ""
    expiry_month: int | None = None
    expiry_year: int | None = None
    status: str = ""
    failure_count: int = 0
    last_failure_at: datetime | None = None
    last_success_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class InterventionRecord:
    occurred_at: datetime
    outcome: InterventionOutcome


@dataclass(frozen=True, slots=True)
class CustomerRiskSnapshot:
    """Read-only projection of a customer's risk state at refresh time."""

    id: str
    name: str
    service_provider: str
    risk_category: str
    service_type: str = ""
    account_value: int = 0
    risk_severity: RiskSeverity = RiskSeverity.MEDIUM
    last_payment_date: datetime | None = None
    next_billing_date: datetime | None = None
    payment_method: PaymentMethodSnapshot | None = None
    # Oldest first; the last element is the most recent intervention.
    interventions: tuple[InterventionRecord, ...] = ()
    risk_factors: tuple[str, ...] = ()
    service_category: ServiceCategory = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "service_category", resolve_service_category(self.service_provider)
        )

    @property
    def failure_count(self) -> int:
        if self.payment_method is None:
            return 0
        return self.payment_method.failure_count

    @property
    def last_failure_at(self) -> datetime | None:
        if self.payment_method is None:
            return None
        return self.payment_method.last_failure_at

    @property
    def latest_intervention(self) -> InterventionRecord | None:
        if not self.interventions:
            return None
        return self.interventions[-1]

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "CustomerRiskSnapshot":
        missing = [name for name in _REQUIRED_FIELDS if not record.get(name)]
        if missing:
            raise IncompleteSnapshotError(record.get("id"), missing)

        payment_method: PaymentMethodSnapshot | None = None
        raw_method = record.get("payment_method")
        if raw_method:
            payment_method = PaymentMethodSnapshot(
                card_type=raw_method.get("card_type") or "",
                last_four_digits=raw_method.get("last_four_digits") or "",
                expiry_month=raw_method.get("expiry_month"),
                expiry_year=raw_method.get("expiry_year"),
                status=raw_method.get("status") or "",
                failure_count=int(raw_method.get("failure_count") or 0),
                last_failure_at=as_aware(raw_method.get("last_failure_at")),
                last_success_at=as_aware(raw_method.get("last_success_at")),
            )

        interventions = sorted(
            (
                InterventionRecord(
                    occurred_at=as_aware(item["occurred_at"]),
                    outcome=InterventionOutcome(_raw_value(item["outcome"]).lower()),
                )
                for item in record.get("interventions") or ()
            ),
            key=lambda item: item.occurred_at,
        )

        severity = record.get("risk_severity") or RiskSeverity.MEDIUM
        return cls(
            id=str(record["id"]),
            name=str(record["name"]),
            service_provider=str(record["service_provider"]),
            risk_category=_raw_value(record["risk_category"]).lower().replace("_", "-"),
            service_type=record.get("service_type") or "",
            account_value=int(record.get("account_value") or 0),
            risk_severity=RiskSeverity(_raw_value(severity).lower()),
            last_payment_date=as_aware(record.get("last_payment_date")),
            next_billing_date=as_aware(record.get("next_billing_date")),
            payment_method=payment_method,
            interventions=tuple(interventions),
            risk_factors=tuple(record.get("risk_factors") or ()),
        )
