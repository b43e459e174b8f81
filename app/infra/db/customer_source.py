import logging
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domain.exceptions import IncompleteSnapshotError
from app.domain.snapshots import CustomerRiskSnapshot
from app.infra.db.models import Customer
from app.infra.db.repositories import CustomerRepository

logger = logging.getLogger(__name__)


class CustomerSource(Protocol):
    async def list_at_risk(self) -> list[CustomerRiskSnapshot]: ...

    async def get_at_risk(self, customer_id: str) -> CustomerRiskSnapshot | None: ...


def customer_record(customer: Customer) -> dict[str, Any]:
    method = next(
        (item for item in customer.payment_methods if item.is_default),
        customer.payment_methods[0] if customer.payment_methods else None,
    )
    return {
        "id": customer.id,
        "name": customer.name,
        "service_provider": customer.service_provider,
        "service_type": customer.service_type,
        "account_value": customer.account_value,
        "risk_category": customer.risk_category,
        "risk_severity": customer.risk_severity,
        "last_payment_date": customer.last_payment_date,
        "next_billing_date": customer.next_billing_date,
        "payment_method": (
            {
                "card_type": method.card_type,
                "last_four_digits": method.last_four_digits,
                "expiry_month": method.expiry_month,
                "expiry_year": method.expiry_year,
                "status": method.status,
                "failure_count": method.failure_count,
                "last_failure_at": method.last_failure_date,
                "last_success_at": method.last_success_date,
            }
            if method is not None
            else None
        ),
        "interventions": [
            {"occurred_at": item.occurred_at, "outcome": item.outcome}
            for item in customer.interventions
        ],
        "risk_factors": [item.factor for item in customer.risk_factors],
    }


class SqlCustomerSource:
    """Reads at-risk customers from the system of record as risk snapshots."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def list_at_risk(self) -> list[CustomerRiskSnapshot]:
        async with self.session_factory() as db:
            customers = await CustomerRepository(db).list_at_risk()

        snapshots: list[CustomerRiskSnapshot] = []
        for customer in customers:
            snapshot = self._to_snapshot(customer)
            if snapshot is not None:
                snapshots.append(snapshot)

        logger.info(
            "Fetched at-risk customers",
            extra={"fetched": len(customers), "usable": len(snapshots)},
        )
        return snapshots

    async def get_at_risk(self, customer_id: str) -> CustomerRiskSnapshot | None:
        async with self.session_factory() as db:
            customer = await CustomerRepository(db).get_at_risk(customer_id)
        if customer is None:
            return None
        return self._to_snapshot(customer)

    @staticmethod
    def _to_snapshot(customer: Customer) -> CustomerRiskSnapshot | None:
        try:
            return CustomerRiskSnapshot.from_record(customer_record(customer))
        except (IncompleteSnapshotError, ValueError, TypeError, KeyError):
            logger.warning(
                "Skipping customer with incomplete risk data",
                extra={"customer_id": customer.id},
                exc_info=True,
            )
            return None
