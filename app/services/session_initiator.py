import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import NAMESPACE_URL, uuid5

from app.domain.enums import InterventionOutcome
from app.domain.outreach import ActiveSession, QueueEntry
from app.domain.policy import payment_issue
from app.domain.snapshots import CustomerRiskSnapshot
from app.infra.db.session_store import SessionStore
from app.infra.realtime.events import OutreachEvent
from app.infra.realtime.publisher import EventSink, emit_safely
from app.services.active_sessions import ActiveSessionRegistry
from app.services.errors import SessionInitiationError
from app.services.message_generator import (
    MessageGenerator,
    OpeningMessage,
    fallback_message,
)

logger = logging.getLogger(__name__)

QUEUE_AGENT_ID = "ai_queue_service"
FALLBACK_AGENT_ID = "ai_queue_service_fallback"


def outreach_session_id(customer_id: str, attempt: int, started_at: datetime) -> str:
    return str(uuid5(NAMESPACE_URL, f"outreach:{customer_id}:{attempt}:{started_at.isoformat()}"))


class SessionInitiator:
    """Opens one outreach conversation for a queue entry the throttle approved."""

    def __init__(
        self,
        store: SessionStore,
        generator: MessageGenerator,
        sessions: ActiveSessionRegistry,
        events: EventSink,
        clock: Callable[[], datetime],
        session_id_factory: Callable[[str, int, datetime], str] = outreach_session_id,
    ) -> None:
        self.store = store
        self.generator = generator
        self.sessions = sessions
        self.events = events
        self.clock = clock
        self.session_id_factory = session_id_factory

    async def initiate(self, entry: QueueEntry) -> ActiveSession:
        snapshot = entry.snapshot
        now = self.clock()
        session = ActiveSession(
            session_id=self.session_id_factory(snapshot.id, entry.contact_attempts + 1, now),
            customer_id=snapshot.id,
            customer_name=snapshot.name,
            started_at=now,
            payment_issue=payment_issue(snapshot.risk_category),
            opening_message="",
        )

        try:
            await self.store.create_session(session)
        except Exception as exc:
            raise SessionInitiationError(snapshot.id, session.session_id) from exc

        message = await self._opening_message(session, snapshot)
        session.opening_message = message.content

        try:
            await self.store.append_message(session.session_id, message)
        except Exception as exc:
            raise SessionInitiationError(snapshot.id, session.session_id) from exc

        self.sessions.register(session)
        entry.contact_attempts += 1
        entry.last_contacted_at = now

        await self._record_intervention(session, message)

        logger.info(
            "Outreach contact initiated",
            extra={
                "customer_id": snapshot.id,
                "session_id": session.session_id,
                "priority": entry.priority,
                "service_provider": snapshot.service_provider,
                "fallback": message.is_fallback,
            },
        )
        emit_safely(
            self.events,
            OutreachEvent.CONTACT_INITIATED,
            {
                "session_id": session.session_id,
                "customer": self._customer_payload(snapshot),
                "queue_entry": self._entry_payload(entry),
                "initial_message": self._message_payload(message),
            },
        )
        return session

    async def _opening_message(
        self, session: ActiveSession, snapshot: CustomerRiskSnapshot
    ) -> OpeningMessage:
        try:
            message = await self.generator.generate_opening_message(session, snapshot)
        except Exception:
            logger.warning(
                "Opening message generation failed, using fallback greeting",
                extra={"customer_id": snapshot.id, "session_id": session.session_id},
                exc_info=True,
            )
            return fallback_message(snapshot)

        if not message.content.strip():
            logger.warning(
                "Opening message generator returned empty content, using fallback greeting",
                extra={"customer_id": snapshot.id, "session_id": session.session_id},
            )
            return fallback_message(snapshot)
        return message

    async def _record_intervention(
        self, session: ActiveSession, message: OpeningMessage
    ) -> None:
        if message.is_fallback:
            notes = "Autonomous contact initiated with fallback greeting."
            agent_id = FALLBACK_AGENT_ID
        else:
            notes = f"Autonomous contact initiated. Initial message: {message.content[:100]}"
            agent_id = QUEUE_AGENT_ID
        try:
            await self.store.record_intervention(
                customer_id=session.customer_id,
                outcome=InterventionOutcome.SCHEDULED,
                notes=notes,
                agent_id=agent_id,
            )
        except Exception:
            logger.exception(
                "Could not record intervention",
                extra={"customer_id": session.customer_id, "session_id": session.session_id},
            )

    @staticmethod
    def _customer_payload(snapshot: CustomerRiskSnapshot) -> dict[str, Any]:
        return {
            "id": snapshot.id,
            "name": snapshot.name,
            "service_provider": snapshot.service_provider,
            "service_category": snapshot.service_category.value,
            "risk_category": snapshot.risk_category,
            "account_value": snapshot.account_value,
        }

    @staticmethod
    def _entry_payload(entry: QueueEntry) -> dict[str, Any]:
        return {
            "priority": entry.priority,
            "urgency_score": entry.urgency_score,
            "queued_at": entry.queued_at.isoformat(),
            "last_contacted_at": (
                entry.last_contacted_at.isoformat()
                if entry.last_contacted_at is not None
                else None
            ),
            "contact_attempts": entry.contact_attempts,
        }

    @staticmethod
    def _message_payload(message: OpeningMessage) -> dict[str, Any]:
        return {
            "content": message.content,
            "kind": message.kind.value,
            "fallback": message.is_fallback,
        }
