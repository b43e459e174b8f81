import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from app.domain.enums import ChatSessionStatus, InterventionOutcome
from app.domain.outreach import ActiveSession
from app.domain.snapshots import CustomerRiskSnapshot
from app.infra.realtime.events import OutreachEvent
from app.services.message_generator import OpeningMessage

# Midday UTC, outside the default 22:00-08:00 quiet window.
BASE_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime = BASE_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


@dataclass(slots=True)
class RecordedEvent:
    event: OutreachEvent
    payload: dict[str, Any]


class RecordingEventSink:
    def __init__(self) -> None:
        self.events: list[RecordedEvent] = []

    def __call__(self, event: OutreachEvent, payload: Mapping[str, Any]) -> None:
        self.events.append(RecordedEvent(event=event, payload=dict(payload)))

    def named(self, event: OutreachEvent) -> list[RecordedEvent]:
        return [item for item in self.events if item.event == event]


@dataclass(slots=True)
class StoredIntervention:
    customer_id: str
    outcome: InterventionOutcome
    notes: str
    agent_id: str


@dataclass
class FakeSessionStore:
    sessions: dict[str, ActiveSession] = field(default_factory=dict)
    messages: dict[str, list[OpeningMessage]] = field(default_factory=dict)
    interventions: list[StoredIntervention] = field(default_factory=list)
    completed: dict[str, tuple[ChatSessionStatus, str | None]] = field(default_factory=dict)
    fail_create_for: set[str] = field(default_factory=set)

    async def create_session(self, session: ActiveSession) -> None:
        if session.customer_id in self.fail_create_for:
            raise ConnectionError("database unavailable")
        self.sessions[session.session_id] = session

    async def append_message(self, session_id: str, message: OpeningMessage) -> None:
        self.messages.setdefault(session_id, []).append(message)

    async def record_intervention(
        self,
        customer_id: str,
        outcome: InterventionOutcome,
        notes: str,
        agent_id: str,
    ) -> None:
        self.interventions.append(
            StoredIntervention(customer_id, outcome, notes, agent_id)
        )

    async def complete_session(
        self,
        session_id: str,
        status: ChatSessionStatus = ChatSessionStatus.COMPLETED,
        outcome: str | None = None,
    ) -> None:
        self.completed[session_id] = (status, outcome)


class FakeMessageGenerator:
    def __init__(self) -> None:
        self.fail = False
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.delay = 0.0

    async def generate_opening_message(
        self, session: ActiveSession, snapshot: CustomerRiskSnapshot
    ) -> OpeningMessage:
        self.calls.append(snapshot.id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail:
                raise TimeoutError("model did not answer")
            return OpeningMessage(content=f"Hi {snapshot.name}, about your payment...")
        finally:
            self.in_flight -= 1


class FakeCustomerSource:
    def __init__(self, snapshots: list[CustomerRiskSnapshot] | None = None) -> None:
        self.snapshots = list(snapshots or [])
        self.list_calls = 0

    async def list_at_risk(self) -> list[CustomerRiskSnapshot]:
        self.list_calls += 1
        return list(self.snapshots)

    async def get_at_risk(self, customer_id: str) -> CustomerRiskSnapshot | None:
        return next((item for item in self.snapshots if item.id == customer_id), None)
