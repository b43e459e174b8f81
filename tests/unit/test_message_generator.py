from datetime import UTC, datetime, timedelta

import pytest

from app.domain.enums import MessageKind
from app.domain.outreach import ActiveSession
from app.services.message_generator import (
    TemplateMessageGenerator,
    fallback_message,
    format_amount,
)
from app.services.session_initiator import outreach_session_id


def _session(snapshot, now) -> ActiveSession:
    return ActiveSession(
        session_id="session-1",
        customer_id=snapshot.id,
        customer_name=snapshot.name,
        started_at=now,
        payment_issue="payment-failure",
        opening_message="",
    )


def test_fallback_message_names_customer_and_provider(make_snapshot) -> None:
    message = fallback_message(make_snapshot(name="Ana", provider="TIM"))

    assert message.content.startswith("Hello Ana! This is TIM.")
    assert message.kind == MessageKind.GREETING
    assert message.is_fallback


def test_format_amount() -> None:
    assert format_amount(8990) == "89.90"
    assert format_amount(0) == "0.00"


@pytest.mark.asyncio
async def test_template_for_expiring_card(make_snapshot) -> None:
    now = datetime(2026, 11, 1, tzinfo=UTC) - timedelta(days=3)
    generator = TemplateMessageGenerator(lambda: now, local_timezone=UTC)
    snapshot = make_snapshot(
        name="Ana", provider="Light", risk_category="expiring-card", expiry=(11, 2026)
    )

    message = await generator.generate_opening_message(_session(snapshot, now), snapshot)

    assert "****4242" in message.content
    assert "expires in 3 days" in message.content
    assert "service interruption" in message.content
    assert not message.is_fallback


@pytest.mark.asyncio
async def test_template_for_failed_payment(make_snapshot, clock) -> None:
    generator = TemplateMessageGenerator(clock, local_timezone=UTC)
    snapshot = make_snapshot(name="João", provider="Inspira", account_value=45000)

    message = await generator.generate_opening_message(_session(snapshot, clock.now), snapshot)

    assert message.content.startswith("Hi João!")
    assert "450.00 tuition" in message.content
    assert message.kind == MessageKind.TEXT


def test_session_ids_are_deterministic(clock) -> None:
    first = outreach_session_id("cust-1", 1, clock.now)

    assert outreach_session_id("cust-1", 1, clock.now) == first
    assert outreach_session_id("cust-1", 2, clock.now) != first
    assert outreach_session_id("cust-2", 1, clock.now) != first
