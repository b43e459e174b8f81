from collections.abc import AsyncIterator
from datetime import UTC, timedelta

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.domain.enums import (
    ChatSessionStatus,
    InterventionOutcome,
    MessageKind,
    MessageSender,
    ServiceCategory,
)
from app.domain.outreach import ActiveSession
from app.domain.scheduler_config import SchedulerConfig
from app.infra.db.customer_source import SqlCustomerSource
from app.infra.db.models import Base, ChatSession, Customer
from app.infra.db.repositories import ChatMessageRepository, InterventionRepository
from app.infra.db.seed import seed_demo_customers
from app.infra.db.session_store import SqlSessionStore
from app.services.errors import ActiveSessionNotFoundError
from app.services.message_generator import OpeningMessage, TemplateMessageGenerator
from app.services.scheduler_service import OutreachScheduler
from tests.fakes import BASE_NOW, FakeClock, RecordingEventSink


@pytest_asyncio.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        await seed_demo_customers(session, now=BASE_NOW)
        await session.commit()

    yield factory
    await engine.dispose()


async def _customer_id(factory: async_sessionmaker[AsyncSession], email: str) -> str:
    async with factory() as session:
        result = await session.execute(select(Customer.id).where(Customer.email == email))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_seed_is_idempotent(session_factory) -> None:
    async with session_factory() as session:
        created = await seed_demo_customers(session, now=BASE_NOW)

    assert created == 0


@pytest.mark.asyncio
async def test_customer_source_builds_snapshots(session_factory) -> None:
    source = SqlCustomerSource(session_factory)

    snapshots = {snapshot.name: snapshot for snapshot in await source.list_at_risk()}

    assert set(snapshots) == {"Maria Silva", "João Pereira", "Ana Costa"}
    maria = snapshots["Maria Silva"]
    assert maria.service_category == ServiceCategory.UTILITIES
    assert maria.risk_category == "multiple-failures"
    assert maria.failure_count == 3
    assert maria.last_failure_at == BASE_NOW - timedelta(hours=2)
    assert maria.risk_factors == ("insufficient_funds", "late_payment_history")

    ana = snapshots["Ana Costa"]
    assert ana.latest_intervention is not None
    assert ana.latest_intervention.outcome == InterventionOutcome.NO_ANSWER
    assert ana.latest_intervention.occurred_at.tzinfo is not None


@pytest.mark.asyncio
async def test_customer_source_get_at_risk(session_factory) -> None:
    source = SqlCustomerSource(session_factory)
    customer_id = await _customer_id(session_factory, "joao.pereira@example.com")

    snapshot = await source.get_at_risk(customer_id)

    assert snapshot is not None
    assert snapshot.service_provider == "Vivo"
    assert await source.get_at_risk("missing") is None


@pytest.mark.asyncio
async def test_session_store_persists_conversation(session_factory) -> None:
    store = SqlSessionStore(session_factory)
    customer_id = await _customer_id(session_factory, "maria.silva@example.com")
    session = ActiveSession(
        session_id="session-1",
        customer_id=customer_id,
        customer_name="Maria Silva",
        started_at=BASE_NOW,
        payment_issue="multiple-payment-failures",
        opening_message="",
    )

    await store.create_session(session)
    await store.append_message(
        "session-1",
        OpeningMessage(content="Hello Maria!", kind=MessageKind.GREETING, is_fallback=True),
    )
    await store.record_intervention(
        customer_id=customer_id,
        outcome=InterventionOutcome.SCHEDULED,
        notes="Autonomous contact initiated.",
        agent_id="ai_queue_service",
    )
    await store.complete_session("session-1", status=ChatSessionStatus.ABANDONED)

    async with session_factory() as db:
        chat_session = await db.get(ChatSession, "session-1")
        messages = await ChatMessageRepository(db).list_by_session("session-1")
        interventions = await InterventionRepository(db).list_for_customer(customer_id)

    assert chat_session is not None
    assert chat_session.status == ChatSessionStatus.ABANDONED
    assert chat_session.ended_at is not None
    [message] = messages
    assert message.sender == MessageSender.AI
    assert message.kind == MessageKind.GREETING
    assert message.metadata_json == {"fallback": True}
    assert [item.outcome for item in interventions] == [InterventionOutcome.SCHEDULED]


@pytest.mark.asyncio
async def test_session_store_complete_unknown_session(session_factory) -> None:
    store = SqlSessionStore(session_factory)

    with pytest.raises(ActiveSessionNotFoundError):
        await store.complete_session("missing")


@pytest.mark.asyncio
async def test_scheduler_contacts_seeded_customers(session_factory) -> None:
    clock = FakeClock()
    events = RecordingEventSink()
    scheduler = OutreachScheduler(
        config=SchedulerConfig(enabled=True),
        customer_source=SqlCustomerSource(session_factory),
        store=SqlSessionStore(session_factory),
        generator=TemplateMessageGenerator(clock, local_timezone=UTC),
        events=events,
        clock=clock,
        local_timezone=UTC,
    )

    # The expiring card is still two weeks out, so only the failed payments queue up.
    assert await scheduler.refresh() == 2
    result = await scheduler.tick()

    assert [session.customer_name for session in result.initiated] == [
        "Maria Silva",
        "João Pereira",
    ]
    async with session_factory() as db:
        rows = (await db.execute(select(ChatSession))).scalars().all()
    assert {row.customer_name for row in rows} == {"Maria Silva", "João Pereira"}
    assert all(row.status == ChatSessionStatus.ACTIVE for row in rows)
