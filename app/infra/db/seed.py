from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.enums import AccountStatus, InterventionOutcome, RiskCategory, RiskSeverity
from app.infra.db.models import Customer, Intervention, PaymentMethod, RiskFactor


def _next_month(now: datetime) -> tuple[int, int]:
    if now.month == 12:
        return 1, now.year + 1
    return now.month + 1, now.year


def demo_customers(now: datetime) -> list[dict]:
    expiry_month, expiry_year = _next_month(now)
    return [
        {
            "name": "Maria Silva",
            "email": "maria.silva@example.com",
            "phone": "+5511999990001",
            "service_provider": "Enel",
            "service_type": "Residential energy",
            "account_value": 62000,
            "risk_category": RiskCategory.MULTIPLE_FAILURES,
            "risk_severity": RiskSeverity.CRITICAL,
            "payment_method": {
                "card_type": "visa",
                "last_four_digits": "4242",
                "expiry_month": 8,
                "expiry_year": now.year + 2,
                "status": "failed",
                "failure_count": 3,
                "last_failure_date": now - timedelta(hours=2),
            },
            "risk_factors": ["insufficient_funds", "late_payment_history"],
            "interventions": [],
        },
        {
            "name": "João Pereira",
            "email": "joao.pereira@example.com",
            "phone": "+5521999990002",
            "service_provider": "Vivo",
            "service_type": "Mobile 20GB",
            "account_value": 8990,
            "risk_category": RiskCategory.FAILED_PAYMENT,
            "risk_severity": RiskSeverity.MEDIUM,
            "payment_method": {
                "card_type": "mastercard",
                "last_four_digits": "5100",
                "expiry_month": 3,
                "expiry_year": now.year + 1,
                "status": "failed",
                "failure_count": 1,
                "last_failure_date": now - timedelta(hours=6),
            },
            "risk_factors": ["card_declined"],
            "interventions": [],
        },
        {
            "name": "Ana Costa",
            "email": "ana.costa@example.com",
            "phone": "+5531999990003",
            "service_provider": "YDUQS/Estácio",
            "service_type": "Undergraduate tuition",
            "account_value": 45000,
            "risk_category": RiskCategory.EXPIRING_CARD,
            "risk_severity": RiskSeverity.HIGH,
            "payment_method": {
                "card_type": "elo",
                "last_four_digits": "6362",
                "expiry_month": expiry_month,
                "expiry_year": expiry_year,
                "status": "success",
                "failure_count": 0,
                "last_failure_date": None,
            },
            "risk_factors": [],
            "interventions": [
                {"outcome": InterventionOutcome.NO_ANSWER, "occurred_at": now - timedelta(days=3)},
            ],
        },
    ]


async def seed_demo_customers(session: AsyncSession, now: datetime | None = None) -> int:
    now = now or datetime.now(UTC)
    specs = demo_customers(now)

    emails = [spec["email"] for spec in specs]
    existing_result = await session.execute(
        select(Customer.email).where(Customer.email.in_(emails))
    )
    existing = set(existing_result.scalars().all())

    created = 0
    for spec in specs:
        if spec["email"] in existing:
            continue

        method = spec["payment_method"]
        customer = Customer(
            name=spec["name"],
            email=spec["email"],
            phone=spec["phone"],
            service_provider=spec["service_provider"],
            service_type=spec["service_type"],
            account_value=spec["account_value"],
            risk_category=spec["risk_category"],
            risk_severity=spec["risk_severity"],
            account_status=AccountStatus.AT_RISK,
            next_billing_date=now + timedelta(days=10),
            payment_methods=[PaymentMethod(is_default=True, **method)],
            risk_factors=[RiskFactor(factor=factor) for factor in spec["risk_factors"]],
            interventions=[Intervention(**item) for item in spec["interventions"]],
        )
        session.add(customer)
        created += 1

    if created:
        await session.flush()
    return created
