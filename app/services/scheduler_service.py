import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, tzinfo
from enum import Enum
from typing import Any

from app.domain.enums import ChatSessionStatus, SchedulerAction, SchedulerState
from app.domain.outreach import ActiveSession, QueueEntry
from app.domain.scheduler_config import SchedulerConfig
from app.domain.snapshots import CustomerRiskSnapshot
from app.domain.state_machine import SchedulerLifecycle
from app.domain.throttle import can_contact, is_quiet_hour
from app.infra.db.customer_source import CustomerSource
from app.infra.db.session_store import SessionStore
from app.infra.realtime.events import OutreachEvent
from app.infra.realtime.publisher import EventSink, NoopEventSink, emit_safely
from app.services.active_sessions import ActiveSessionRegistry
from app.services.errors import CustomerNotFoundError, QueueEntryNotFoundError
from app.services.message_generator import MessageGenerator
from app.services.outreach_queue import POLICY_ERRORS, OutreachQueue
from app.services.session_initiator import SessionInitiator, outreach_session_id

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class TickSkip(str, Enum):
    DISABLED = "disabled"
    QUIET_HOURS = "quiet_hours"
    NO_CAPACITY = "no_capacity"


@dataclass(slots=True)
class TickResult:
    initiated: list[ActiveSession] = field(default_factory=list)
    failures: int = 0
    skipped: TickSkip | None = None


@dataclass(slots=True)
class SchedulerStats:
    queue_length: int
    active_sessions_count: int
    available_slots: int
    is_processing_active: bool


@dataclass(slots=True)
class SchedulerStatus:
    state: SchedulerState
    queue: list[QueueEntry]
    active_sessions: list[ActiveSession]
    config: SchedulerConfig
    stats: SchedulerStats


class OutreachScheduler:
    """Decides which at-risk customer to contact, when, and opens the conversation.

    All engine state (queue, active sessions, config) lives on this instance and
    is only touched from the event loop. Ticks are serialized by a lock, so a
    slow tick delays the next one instead of overlapping it.
    """

    def __init__(
        self,
        config: SchedulerConfig,
        customer_source: CustomerSource,
        store: SessionStore,
        generator: MessageGenerator,
        events: EventSink | None = None,
        clock: Callable[[], datetime] = utc_now,
        local_timezone: tzinfo | None = None,
        session_id_factory: Callable[[str, int, datetime], str] = outreach_session_id,
    ) -> None:
        self.customer_source = customer_source
        self.store = store
        self.events = events or NoopEventSink()
        self.clock = clock
        self.local_timezone = local_timezone
        self.queue = OutreachQueue(self.local_now)
        self.sessions = ActiveSessionRegistry()
        self.initiator = SessionInitiator(
            store=store,
            generator=generator,
            sessions=self.sessions,
            events=self.events,
            clock=clock,
            session_id_factory=session_id_factory,
        )
        self._config = config
        self._state = SchedulerState.STOPPED
        self._tick_lock = asyncio.Lock()
        self._loop_task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None
        # Stopped loops that may still be finishing their last tick.
        self._retired_tasks: set[asyncio.Task[None]] = set()

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def state(self) -> SchedulerState:
        return self._state

    def local_now(self) -> datetime:
        """Clock for quiet hours and card-expiry windows, in the configured zone."""
        now = self.clock()
        if self.local_timezone is not None:
            return now.astimezone(self.local_timezone)
        return now.astimezone()

    async def refresh(self, customers: Iterable[CustomerRiskSnapshot] | None = None) -> int:
        if customers is None:
            customers = await self.customer_source.list_at_risk()
        return self.queue.reconcile(customers)

    def enqueue_customer(self, snapshot: CustomerRiskSnapshot) -> QueueEntry:
        entry = self.queue.upsert(snapshot)
        logger.info(
            "Customer added to outreach queue",
            extra={"customer_id": snapshot.id, "priority": entry.priority},
        )
        return entry

    async def enqueue_from_source(self, customer_id: str) -> QueueEntry:
        snapshot = await self.customer_source.get_at_risk(customer_id)
        if snapshot is None:
            raise CustomerNotFoundError(customer_id)
        return self.enqueue_customer(snapshot)

    def remove_customer(self, customer_id: str) -> QueueEntry:
        entry = self.queue.remove(customer_id)
        if entry is None:
            raise QueueEntryNotFoundError(customer_id)
        logger.info("Customer removed from outreach queue", extra={"customer_id": customer_id})
        return entry

    def update_config(self, changes: Mapping[str, Any]) -> SchedulerConfig:
        # merge() validates, so a rejected update leaves the current config in place.
        self._config = self._config.merge(changes)
        logger.info("Outreach configuration updated", extra={"config": self._config.as_dict()})
        emit_safely(self.events, OutreachEvent.CONFIG_UPDATED, {"config": self._config.as_dict()})
        return self._config

    def start(self) -> None:
        self._state = SchedulerLifecycle.transition(self._state, SchedulerAction.START)
        self._cancel_timer()
        self._config = replace(self._config, enabled=True)

        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._loop_task = asyncio.get_running_loop().create_task(
            self._run_loop(stop_event), name="outreach-scheduler"
        )

        logger.info(
            "Autonomous outreach started",
            extra={"tick_interval_ms": self._config.tick_interval_ms},
        )
        emit_safely(
            self.events,
            OutreachEvent.AUTONOMOUS_MODE_STARTED,
            {"config": self._config.as_dict()},
        )

    def stop(self) -> None:
        """Prevents future ticks; a tick already in progress runs to completion."""
        self._state = SchedulerLifecycle.transition(self._state, SchedulerAction.STOP)
        self._config = replace(self._config, enabled=False)
        self._cancel_timer()

        logger.info("Autonomous outreach stopped")
        emit_safely(self.events, OutreachEvent.AUTONOMOUS_MODE_STOPPED, {})

    async def shutdown(self) -> None:
        if SchedulerLifecycle.is_running(self._state):
            self.stop()
        if self._retired_tasks:
            await asyncio.gather(*self._retired_tasks)

    async def complete_session(
        self,
        session_id: str,
        status: ChatSessionStatus = ChatSessionStatus.COMPLETED,
        outcome: str | None = None,
    ) -> ActiveSession:
        session = self.sessions.release(session_id)
        session.status = status
        try:
            await self.store.complete_session(session_id, status=status, outcome=outcome)
        except Exception:
            logger.exception(
                "Could not persist session completion",
                extra={"session_id": session_id, "customer_id": session.customer_id},
            )

        emit_safely(
            self.events,
            OutreachEvent.SESSION_COMPLETED,
            {
                "session_id": session_id,
                "customer_id": session.customer_id,
                "status": status.value,
                "outcome": outcome,
            },
        )
        return session

    def get_status(self) -> SchedulerStatus:
        config = self._config
        active_count = len(self.sessions)
        return SchedulerStatus(
            state=self._state,
            queue=self.queue.ordered(),
            active_sessions=list(self.sessions),
            config=config,
            stats=SchedulerStats(
                queue_length=len(self.queue),
                active_sessions_count=active_count,
                available_slots=config.max_concurrent_sessions - active_count,
                is_processing_active=config.enabled
                and not is_quiet_hour(config, self.local_now()),
            ),
        )

    async def tick(self) -> TickResult:
        async with self._tick_lock:
            return await self._process_queue()

    async def _process_queue(self) -> TickResult:
        config = self._config
        if not config.enabled:
            return TickResult(skipped=TickSkip.DISABLED)
        if is_quiet_hour(config, self.local_now()):
            return TickResult(skipped=TickSkip.QUIET_HOURS)

        available_slots = config.max_concurrent_sessions - len(self.sessions)
        if available_slots <= 0:
            logger.info("Outreach tick skipped: no available session slots")
            return TickResult(skipped=TickSkip.NO_CAPACITY)

        now = self.local_now()
        result = TickResult()
        for entry in self.queue.ordered():
            if len(result.initiated) >= available_slots:
                break
            # A manual removal may land while an earlier initiation is awaited.
            if entry.customer_id not in self.queue:
                continue

            try:
                decision = can_contact(entry, config, now, self.sessions.customer_ids())
            except POLICY_ERRORS:
                logger.warning(
                    "Skipping queue entry with unusable risk snapshot",
                    extra={"customer_id": entry.customer_id},
                    exc_info=True,
                )
                continue
            if not decision.allowed:
                continue

            try:
                session = await self.initiator.initiate(entry)
            except Exception:
                result.failures += 1
                logger.exception(
                    "Failed to initiate outreach contact",
                    extra={"customer_id": entry.customer_id},
                )
                continue
            result.initiated.append(session)

        if result.initiated:
            logger.info(
                "Outreach tick processed",
                extra={"initiated": len(result.initiated), "failures": result.failures},
            )
        return result

    async def _run_loop(self, stop_event: asyncio.Event) -> None:
        while True:
            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=self._config.tick_interval_ms / 1000
                )
                return
            except TimeoutError:
                pass

            try:
                await self.tick()
            except Exception:
                logger.exception("Outreach tick failed")

    def _cancel_timer(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        self._stop_event = None
        task = self._loop_task
        self._loop_task = None
        if task is not None and not task.done():
            self._retired_tasks.add(task)
            task.add_done_callback(self._retired_tasks.discard)
