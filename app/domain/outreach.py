from dataclasses import dataclass
from datetime import datetime

from app.domain.enums import ChatSessionStatus
from app.domain.snapshots import CustomerRiskSnapshot


@dataclass(slots=True)
class QueueEntry:
    snapshot: CustomerRiskSnapshot
    priority: int
    urgency_score: int
    queued_at: datetime
    # Monotonic enqueue order, the tie-break between equal priorities.
    sequence: int
    last_contacted_at: datetime | None = None
    contact_attempts: int = 0

    @property
    def customer_id(self) -> str:
        return self.snapshot.id

    @property
    def sort_key(self) -> tuple[int, int]:
        return (-self.priority, self.sequence)


@dataclass(slots=True)
class ActiveSession:
    session_id: str
    customer_id: str
    customer_name: str
    started_at: datetime
    payment_issue: str
    opening_message: str
    status: ChatSessionStatus = ChatSessionStatus.ACTIVE
