from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from opsdesk.core.errors import AdvanceInFlight, InvalidTransition, RecordNotFound, RecordStoreError
from opsdesk.models.enums import OrderStatus
from opsdesk.models.order import Order
from opsdesk.services.lifecycle import ORDER_LIFECYCLE


def test_new_order_starts_received_without_stamps(new_order):
    order = new_order(status="shipped", shipped_at="2026-01-01")
    assert order.status == OrderStatus.RECEIVED
    assert all(getattr(order, s) is None for s in ORDER_LIFECYCLE.stamps())
    assert order.order_number.startswith("ORD-20260302-")


def test_end_to_end_confirm_then_pick(order_tracker, new_order, clock):
    order = new_order()

    order = order_tracker.advance(order.id, "confirmed")
    confirmed_at = order.confirmed_at
    assert order.status == OrderStatus.CONFIRMED
    assert confirmed_at == clock.now
    assert [order.picked_at, order.packed_at, order.shipped_at, order.delivered_at] == [None] * 4

    clock.tick(minutes=10)
    order = order_tracker.advance(order.id, OrderStatus.PICKED)
    assert order.status == OrderStatus.PICKED
    assert order.picked_at == clock.now
    assert order.confirmed_at == confirmed_at


def test_full_path_keeps_stamps_monotonic(order_tracker, new_order, clock):
    order = new_order()
    for stage in ORDER_LIFECYCLE.stages[1:]:
        clock.tick(hours=1)
        order = order_tracker.advance(order.id, stage.status)
    stamps = [getattr(order, s) for s in ORDER_LIFECYCLE.stamps()]
    assert stamps == sorted(stamps)
    assert order_tracker.next_action(order) is None


def test_skip_is_refused_without_a_write(order_tracker, new_order, feed):
    order = order_tracker.advance(new_order().id, "confirmed")
    events = []
    feed.subscribe("orders", events.append)

    with pytest.raises(InvalidTransition):
        order_tracker.advance(order.id, "shipped")

    fresh = order_tracker.get(order.id)
    assert fresh.status == OrderStatus.CONFIRMED
    assert fresh.shipped_at is None
    assert events == []


def test_advance_while_in_flight_is_refused(order_tracker, new_order, guard):
    order = new_order()
    with guard.claim(("orders", order.id)):
        with pytest.raises(AdvanceInFlight):
            order_tracker.advance(order.id, "confirmed")
    assert order_tracker.get(order.id).confirmed_at is None
    # released afterwards
    assert order_tracker.advance(order.id, "confirmed").status == OrderStatus.CONFIRMED


def test_second_advance_to_same_stage_is_refused(order_tracker, new_order):
    order = new_order()
    order_tracker.advance(order.id, "confirmed")
    with pytest.raises(InvalidTransition):
        order_tracker.advance(order.id, "confirmed")


def test_stale_status_write_is_refused(order_tracker, new_order, store, db):
    """Compare-and-set: a write based on an outdated status matches no row."""
    order = new_order()
    order_tracker.advance(order.id, "confirmed")
    with pytest.raises(InvalidTransition):
        store.update_by_id(
            Order, order.id,
            {"status": OrderStatus.CONFIRMED, "confirmed_at": order.order_date},
            expected={"status": OrderStatus.RECEIVED, "confirmed_at": None},
        )


def test_failed_write_leaves_record_unchanged(order_tracker, new_order, db, monkeypatch):
    order = new_order()

    def broken_commit():
        raise OperationalError("UPDATE orders", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(RecordStoreError):
        order_tracker.advance(order.id, "confirmed")
    monkeypatch.undo()

    fresh = order_tracker.get(order.id)
    assert fresh.status == OrderStatus.RECEIVED
    assert fresh.confirmed_at is None


def test_advance_unknown_order(order_tracker):
    with pytest.raises(RecordNotFound):
        order_tracker.advance(999, "confirmed")


def test_list_filters_and_searches(order_tracker, new_order, clock):
    a = new_order(customer_name="Amara Okafor")
    clock.tick(minutes=1)
    b = new_order(customer_name="Jon Lindqvist")
    order_tracker.advance(b.id, "confirmed")

    assert [o.id for o in order_tracker.list()] == [b.id, a.id]
    assert [o.id for o in order_tracker.list(status=OrderStatus.RECEIVED)] == [a.id]
    assert [o.id for o in order_tracker.list(search="lindq")] == [b.id]


def test_counts(order_tracker, new_order):
    for _ in range(3):
        new_order()
    order_tracker.advance(1, "confirmed")
    order_tracker.advance(2, "confirmed")
    order_tracker.advance(2, "picked")
    assert order_tracker.counts() == {"total": 3, "received": 1, "processing": 2, "shipped": 0, "delivered": 0}


def test_progress_after_stage(order_tracker, new_order, clock):
    order = order_tracker.advance(new_order().id, "confirmed")
    clock.tick(seconds=1)
    order = order_tracker.advance(order.id, "picked")
    progress = order_tracker.progress(order)
    assert progress["next_action"] == "packed"
    assert progress["timeline"][2]["at"] == clock.now
    assert clock.now - progress["timeline"][1]["at"] == timedelta(seconds=1)
