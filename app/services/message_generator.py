from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Protocol

from app.domain.enums import MessageKind, RiskCategory, ServiceCategory
from app.domain.outreach import ActiveSession
from app.domain.policy import days_until_expiry
from app.domain.snapshots import CustomerRiskSnapshot

FALLBACK_GREETING = (
    "Hello {name}! This is {provider}. "
    "We had a problem with your payment — let's resolve it together?"
)


@dataclass(frozen=True, slots=True)
class OpeningMessage:
    content: str
    kind: MessageKind = MessageKind.TEXT
    is_fallback: bool = False


class MessageGenerator(Protocol):
    async def generate_opening_message(
        self,
        session: ActiveSession,
        snapshot: CustomerRiskSnapshot,
    ) -> OpeningMessage: ...


def fallback_message(snapshot: CustomerRiskSnapshot) -> OpeningMessage:
    return OpeningMessage(
        content=FALLBACK_GREETING.format(
            name=snapshot.name, provider=snapshot.service_provider
        ),
        kind=MessageKind.GREETING,
        is_fallback=True,
    )


_TEMPLATES: dict[ServiceCategory, dict[str, str]] = {
    ServiceCategory.TELECOM: {
        "card_expiring": (
            "Hi {name}! This is {provider}. Your card {card_mask} expires in {days} days. "
            "Want to update it so you don't lose your number?"
        ),
        "payment_failed": (
            "Hi {name}! The payment for your {service_type} plan of {value} was not "
            "processed. Shall we sort it out to keep your line active?"
        ),
    },
    ServiceCategory.UTILITIES: {
        "card_expiring": (
            "Hi {name}! This is {provider}. Your card {card_mask} expires in {days} days. "
            "Want to update it to avoid a service interruption?"
        ),
        "payment_failed": (
            "Hi {name}! Your {value} bill has not been paid. "
            "Shall we resolve it before the disconnection deadline?"
        ),
    },
    ServiceCategory.EDUCATION: {
        "card_expiring": (
            "Hi {name}! This is {provider}. Your card {card_mask} expires in {days} days. "
            "Want to update it to keep your classes on track?"
        ),
        "payment_failed": (
            "Hi {name}! The {value} tuition payment was not processed. "
            "Shall we resolve it so your semester isn't affected?"
        ),
    },
}


def format_amount(minor_units: int) -> str:
    return f"{minor_units / 100:.2f}"


class TemplateMessageGenerator:
    """Renders a canned opening message per service category and scenario."""

    def __init__(
        self,
        clock: Callable[[], datetime],
        local_timezone: tzinfo | None = None,
    ) -> None:
        self._clock = clock
        self._local_timezone = local_timezone

    async def generate_opening_message(
        self,
        session: ActiveSession,
        snapshot: CustomerRiskSnapshot,
    ) -> OpeningMessage:
        _ = session
        scenario = (
            "card_expiring"
            if snapshot.risk_category == RiskCategory.EXPIRING_CARD.value
            else "payment_failed"
        )
        template = _TEMPLATES[snapshot.service_category][scenario]

        method = snapshot.payment_method
        days = days_until_expiry(snapshot, self._local_now())
        return OpeningMessage(
            content=template.format(
                name=snapshot.name,
                provider=snapshot.service_provider,
                card_mask=f"****{method.last_four_digits if method else ''}",
                days=days if days is not None else "a few",
                value=format_amount(snapshot.account_value),
                service_type=snapshot.service_type or "service",
            )
        )

    def _local_now(self) -> datetime:
        if self._local_timezone is not None:
            return self._clock().astimezone(self._local_timezone)
        return self._clock().astimezone()
