from datetime import UTC, datetime, timedelta

from app.services.outreach_queue import OutreachQueue


def _ids(queue: OutreachQueue) -> list[str]:
    return [entry.customer_id for entry in queue.ordered()]


def test_orders_by_priority_then_enqueue_order(make_snapshot, clock) -> None:
    queue = OutreachQueue(clock)

    queue.upsert(make_snapshot("low", provider="TIM"))
    clock.advance(seconds=1)
    queue.upsert(make_snapshot("high", provider="Enel", account_value=60000))
    clock.advance(seconds=1)
    queue.upsert(make_snapshot("low-later", provider="Oi"))

    assert _ids(queue) == ["high", "low", "low-later"]


def test_equal_priority_keeps_fifo_with_same_timestamp(make_snapshot, clock) -> None:
    queue = OutreachQueue(clock)

    for customer_id in ("a", "b", "c"):
        queue.upsert(make_snapshot(customer_id))

    assert _ids(queue) == ["a", "b", "c"]


def test_upsert_preserves_queue_bookkeeping(make_snapshot, clock) -> None:
    queue = OutreachQueue(clock)
    first = queue.upsert(make_snapshot("cust-1", account_value=0))
    first.contact_attempts = 1
    first.last_contacted_at = clock.now
    queued_at = first.queued_at

    clock.advance(hours=1)
    updated = queue.upsert(make_snapshot("cust-1", account_value=60000))

    assert updated is first
    assert len(queue) == 1
    assert updated.queued_at == queued_at
    assert updated.contact_attempts == 1
    assert updated.priority > 30
    assert updated.snapshot.account_value == 60000


def test_reprioritized_entry_moves_ahead(make_snapshot, clock) -> None:
    queue = OutreachQueue(clock)
    queue.upsert(make_snapshot("first"))
    queue.upsert(make_snapshot("second"))

    queue.upsert(make_snapshot("second", failure_count=3))

    assert _ids(queue) == ["second", "first"]


def test_remove(make_snapshot, clock) -> None:
    queue = OutreachQueue(clock)
    queue.upsert(make_snapshot("cust-1"))

    assert queue.remove("cust-1") is not None
    assert queue.remove("cust-1") is None
    assert "cust-1" not in queue
    assert queue.ordered() == []


def test_reconcile_keeps_only_triggering_customers(make_snapshot, clock) -> None:
    queue = OutreachQueue(clock)
    queue.upsert(make_snapshot("gone"))

    length = queue.reconcile(
        [
            make_snapshot("fresh", last_failure_at=clock.now - timedelta(hours=1)),
            make_snapshot("stale", last_failure_at=clock.now - timedelta(days=2)),
            make_snapshot("vip", risk_category="high-value"),
        ]
    )

    assert length == 1
    assert _ids(queue) == ["fresh"]


def test_reconcile_is_idempotent(make_snapshot, clock) -> None:
    queue = OutreachQueue(clock)
    snapshots = [
        make_snapshot("a", provider="Enel"),
        make_snapshot("b", provider="TIM"),
        make_snapshot("c", provider="Salta", account_value=25000),
    ]

    queue.reconcile(snapshots)
    first_pass = [(entry.customer_id, entry.priority, entry.queued_at) for entry in queue.ordered()]
    clock.advance(minutes=5)
    queue.reconcile(snapshots)
    second_pass = [(entry.customer_id, entry.priority, entry.queued_at) for entry in queue.ordered()]

    assert first_pass == second_pass


def test_reconcile_skips_malformed_snapshots(make_snapshot, clock) -> None:
    queue = OutreachQueue(clock)

    length = queue.reconcile(
        [
            make_snapshot("bad-expiry", risk_category="expiring-card", expiry=("soon", 2026)),
            make_snapshot("naive-date", last_failure_at=datetime(2026, 10, 18, 11, 0)),
            make_snapshot("good", last_failure_at=datetime(2026, 10, 18, 11, 0, tzinfo=UTC)),
        ]
    )

    assert length == 1
    assert _ids(queue) == ["good"]
