from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domain.enums import ChatSessionStatus, InterventionOutcome, MessageSender
from app.domain.outreach import ActiveSession
from app.infra.db.repositories import (
    ChatMessageRepository,
    ChatSessionRepository,
    InterventionRepository,
)
from app.services.errors import ActiveSessionNotFoundError
from app.services.message_generator import OpeningMessage


class SessionStore(Protocol):
    async def create_session(self, session: ActiveSession) -> None: ...

    async def append_message(self, session_id: str, message: OpeningMessage) -> None: ...

    async def record_intervention(
        self,
        customer_id: str,
        outcome: InterventionOutcome,
        notes: str,
        agent_id: str,
    ) -> None: ...

    async def complete_session(
        self,
        session_id: str,
        status: ChatSessionStatus = ChatSessionStatus.COMPLETED,
        outcome: str | None = None,
    ) -> None: ...


class SqlSessionStore:
    """Session store backed by the relational database, one transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def create_session(self, session: ActiveSession) -> None:
        async with self.session_factory() as db:
            await ChatSessionRepository(db).create(
                session_id=session.session_id,
                customer_id=session.customer_id,
                customer_name=session.customer_name,
                payment_issue=session.payment_issue,
                started_at=session.started_at,
            )
            await db.commit()

    async def append_message(self, session_id: str, message: OpeningMessage) -> None:
        async with self.session_factory() as db:
            await ChatMessageRepository(db).create(
                chat_session_id=session_id,
                sender=MessageSender.AI,
                kind=message.kind,
                content=message.content,
                metadata_json={"fallback": True} if message.is_fallback else None,
            )
            await db.commit()

    async def record_intervention(
        self,
        customer_id: str,
        outcome: InterventionOutcome,
        notes: str,
        agent_id: str,
    ) -> None:
        async with self.session_factory() as db:
            await InterventionRepository(db).create(
                customer_id=customer_id,
                outcome=outcome,
                notes=notes,
                agent_id=agent_id,
            )
            await db.commit()

    async def complete_session(
        self,
        session_id: str,
        status: ChatSessionStatus = ChatSessionStatus.COMPLETED,
        outcome: str | None = None,
    ) -> None:
        async with self.session_factory() as db:
            sessions = ChatSessionRepository(db)
            chat_session = await sessions.get_by_id(session_id)
            if chat_session is None:
                raise ActiveSessionNotFoundError(session_id)
            await sessions.close(chat_session, status, outcome)
            await db.commit()
