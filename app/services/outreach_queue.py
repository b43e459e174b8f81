import itertools
import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from app.domain.outreach import QueueEntry
from app.domain.policy import priority, should_trigger, urgency_score
from app.domain.snapshots import CustomerRiskSnapshot

logger = logging.getLogger(__name__)

# Malformed snapshot data surfaces from the policy as one of these.
POLICY_ERRORS = (ValueError, TypeError, AttributeError, OverflowError)


class OutreachQueue:
    """Customers awaiting contact, one entry per customer.

    Ordered by priority (highest first), then by enqueue time (oldest first).
    The order is rebuilt with a full sort after every mutation batch.
    """

    def __init__(self, clock: Callable[[], datetime]) -> None:
        self._clock = clock
        self._entries: dict[str, QueueEntry] = {}
        self._ordered: list[QueueEntry] = []
        self._sequence = itertools.count()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, customer_id: object) -> bool:
        return customer_id in self._entries

    def get(self, customer_id: str) -> QueueEntry | None:
        return self._entries.get(customer_id)

    def upsert(self, snapshot: CustomerRiskSnapshot) -> QueueEntry:
        entry = self._upsert(snapshot, self._clock())
        self._reorder()
        return entry

    def remove(self, customer_id: str) -> QueueEntry | None:
        entry = self._entries.pop(customer_id, None)
        if entry is not None:
            self._reorder()
        return entry

    def reconcile(self, snapshots: Iterable[CustomerRiskSnapshot]) -> int:
        """Replace queue membership with the customers that still need contact.

        Customers whose snapshot cannot be evaluated are skipped and logged.
        Returns the resulting queue length.
        """
        now = self._clock()
        eligible: dict[str, CustomerRiskSnapshot] = {}
        for snapshot in snapshots:
            try:
                if should_trigger(snapshot, now):
                    eligible[snapshot.id] = snapshot
            except POLICY_ERRORS:
                logger.warning(
                    "Skipping customer with unusable risk snapshot",
                    extra={"customer_id": getattr(snapshot, "id", None)},
                    exc_info=True,
                )

        dropped = [customer_id for customer_id in self._entries if customer_id not in eligible]
        for customer_id in dropped:
            del self._entries[customer_id]

        for snapshot in eligible.values():
            try:
                self._upsert(snapshot, now)
            except POLICY_ERRORS:
                self._entries.pop(snapshot.id, None)
                logger.warning(
                    "Skipping customer whose priority could not be computed",
                    extra={"customer_id": snapshot.id},
                    exc_info=True,
                )

        self._reorder()
        logger.info(
            "Outreach queue reconciled",
            extra={
                "queue_length": len(self._entries),
                "dropped": len(dropped),
            },
        )
        return len(self._entries)

    def ordered(self) -> list[QueueEntry]:
        return list(self._ordered)

    def _upsert(self, snapshot: CustomerRiskSnapshot, now: datetime) -> QueueEntry:
        entry_priority = priority(snapshot, now)
        entry_urgency = urgency_score(snapshot)

        entry = self._entries.get(snapshot.id)
        if entry is not None:
            entry.snapshot = snapshot
            entry.priority = entry_priority
            entry.urgency_score = entry_urgency
            return entry

        entry = QueueEntry(
            snapshot=snapshot,
            priority=entry_priority,
            urgency_score=entry_urgency,
            queued_at=now,
            sequence=next(self._sequence),
        )
        self._entries[snapshot.id] = entry
        return entry

    def _reorder(self) -> None:
        self._ordered = sorted(self._entries.values(), key=lambda entry: entry.sort_key)
