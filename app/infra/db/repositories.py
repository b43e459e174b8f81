from datetime import UTC, datetime

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.domain.enums import (
    AccountStatus,
    ChatSessionStatus,
    InterventionOutcome,
    MessageKind,
    MessageSender,
)
from app.infra.db.models import ChatMessage, ChatSession, Customer, Intervention


class CustomerRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _with_risk_context(self) -> Select[tuple[Customer]]:
        return select(Customer).options(
            selectinload(Customer.payment_methods),
            selectinload(Customer.risk_factors),
            selectinload(Customer.interventions),
        )

    async def list_at_risk(self) -> list[Customer]:
        stmt = (
            self._with_risk_context()
            .where(Customer.account_status == AccountStatus.AT_RISK)
            .order_by(Customer.created_at.asc(), Customer.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_at_risk(self, customer_id: str) -> Customer | None:
        stmt = self._with_risk_context().where(
            Customer.id == customer_id,
            Customer.account_status == AccountStatus.AT_RISK,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class ChatSessionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, session_id: str) -> ChatSession | None:
        return await self.session.get(ChatSession, session_id)

    async def create(
        self,
        session_id: str,
        customer_id: str,
        customer_name: str,
        payment_issue: str,
        started_at: datetime,
    ) -> ChatSession:
        chat_session = ChatSession(
            id=session_id,
            customer_id=customer_id,
            customer_name=customer_name,
            status=ChatSessionStatus.ACTIVE,
            payment_issue=payment_issue,
            started_at=started_at,
        )
        self.session.add(chat_session)
        await self.session.flush()
        return chat_session

    async def close(
        self,
        chat_session: ChatSession,
        status: ChatSessionStatus,
        outcome: str | None = None,
    ) -> None:
        chat_session.status = status
        chat_session.ended_at = datetime.now(UTC)
        if outcome is not None:
            chat_session.outcome = outcome
        await self.session.flush()


class ChatMessageRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        chat_session_id: str,
        sender: MessageSender,
        kind: MessageKind,
        content: str,
        metadata_json: dict | None = None,
    ) -> ChatMessage:
        message = ChatMessage(
            chat_session_id=chat_session_id,
            sender=sender,
            kind=kind,
            content=content,
            metadata_json=metadata_json,
        )
        self.session.add(message)
        await self.session.flush()
        return message

    async def list_by_session(self, chat_session_id: str) -> list[ChatMessage]:
        stmt: Select[tuple[ChatMessage]] = (
            select(ChatMessage)
            .where(ChatMessage.chat_session_id == chat_session_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class InterventionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        customer_id: str,
        outcome: InterventionOutcome,
        notes: str | None = None,
        agent_id: str | None = None,
    ) -> Intervention:
        intervention = Intervention(
            customer_id=customer_id,
            outcome=outcome,
            notes=notes,
            agent_id=agent_id,
        )
        self.session.add(intervention)
        await self.session.flush()
        return intervention

    async def list_for_customer(self, customer_id: str) -> list[Intervention]:
        stmt: Select[tuple[Intervention]] = (
            select(Intervention)
            .where(Intervention.customer_id == customer_id)
            .order_by(Intervention.occurred_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
