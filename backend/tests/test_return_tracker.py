from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from opsdesk.core.errors import (
    AdvanceInFlight,
    DataIntegrityError,
    InvalidTransition,
    RecordNotFound,
    RecordStoreError,
    ValidationFailed,
)
from opsdesk.models.enums import Carrier, PickupSlot, ReturnStatus, ReturnType
from opsdesk.models.reverse_pickup import ReversePickup
from opsdesk.services.lifecycle import RETURN_LIFECYCLE


@pytest.fixture
def new_return(new_order, return_tracker):
    def make(**fields):
        order = new_order(shipping_address="12 Elm St", shipping_city="Leeds")
        data = {"order_id": order.id, "reason": "arrived cracked"}
        data.update(fields)
        return return_tracker.create(data)
    return make


def pickup_details(**fields):
    data = {
        "carrier": "ups",
        "pickup_date": date(2026, 3, 4),
        "pickup_time_slot": "12:00 PM - 3:00 PM",
        "contact_name": "Amara Okafor",
        "contact_phone": "+44 7700 900123",
    }
    data.update(fields)
    return data


def test_create_copies_order_details(new_return):
    ret = new_return()
    assert ret.status == ReturnStatus.REQUESTED
    assert ret.customer_name == "Amara Okafor"
    assert ret.pickup_address == "12 Elm St, Leeds"
    assert float(ret.refund_amount) == 80.0
    assert ret.return_number.startswith("RET-20260302-")


def test_create_for_missing_order(return_tracker):
    with pytest.raises(RecordNotFound):
        return_tracker.create({"order_id": 404, "reason": "x"})


def test_refund_above_order_total_is_refused(new_return):
    with pytest.raises(ValidationFailed):
        new_return(refund_amount=500)


def test_reject_is_terminal_and_stamps_nothing(new_return, return_tracker):
    ret = return_tracker.reject(new_return().id)
    assert ret.status == ReturnStatus.REJECTED
    assert all(getattr(ret, s) is None for s in RETURN_LIFECYCLE.stamps())

    with pytest.raises(InvalidTransition):
        return_tracker.approve(ret.id)
    with pytest.raises(InvalidTransition):
        return_tracker.schedule_pickup(ret.id, pickup_details())
    with pytest.raises(InvalidTransition):
        return_tracker.advance(ret.id, "received")

    fresh = return_tracker.get(ret.id)
    assert fresh.status == ReturnStatus.REJECTED
    assert fresh.picked_up_at is None and fresh.received_at is None


def test_reject_only_from_requested(new_return, return_tracker):
    ret = return_tracker.approve(new_return().id)
    with pytest.raises(InvalidTransition):
        return_tracker.reject(ret.id)


def test_approve_stamps_approved_at(new_return, return_tracker, clock):
    ret = return_tracker.approve(new_return().id)
    assert ret.status == ReturnStatus.APPROVED
    assert ret.approved_at == clock.now


def test_explicit_zero_refund_is_kept(new_return):
    ret = new_return(return_type=ReturnType.EXCHANGE, refund_amount=0)
    assert ret.refund_amount == 0


def test_pickup_on_inconsistent_return_reports_integrity(new_return, return_tracker, db, clock):
    ret = new_return()
    ret.received_at = clock()  # stamp without the stages before it
    db.commit()
    with pytest.raises(DataIntegrityError):
        return_tracker.schedule_pickup(ret.id, pickup_details())
    assert db.query(ReversePickup).count() == 0


def test_pickup_requires_approval(new_return, return_tracker, db):
    ret = new_return()
    with pytest.raises(InvalidTransition):
        return_tracker.schedule_pickup(ret.id, pickup_details())
    assert db.query(ReversePickup).count() == 0


def test_schedule_pickup_writes_both_records(new_return, return_tracker, clock, feed):
    ret = return_tracker.approve(new_return().id)
    seen = []
    feed.subscribe("returns", lambda e: seen.append(("returns", e.type)))
    feed.subscribe("reverse_pickups", lambda e: seen.append(("reverse_pickups", e.type)))

    clock.tick(hours=2)
    ret, pickup = return_tracker.schedule_pickup(ret.id, pickup_details(), user_id=None)

    assert ret.status == ReturnStatus.PICKED_UP
    assert ret.carrier == "ups"
    assert ret.picked_up_at == clock.now
    assert ret.pickup_scheduled_at == datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)
    assert pickup.return_id == ret.id
    assert pickup.carrier is Carrier.UPS
    assert pickup.pickup_time_slot is PickupSlot.AFTERNOON
    assert pickup.pickup_address == "12 Elm St, Leeds"
    assert seen == [("reverse_pickups", "INSERT"), ("returns", "UPDATE")]


def test_pickup_in_the_past_is_refused(new_return, return_tracker):
    ret = return_tracker.approve(new_return().id)
    with pytest.raises(ValidationFailed):
        return_tracker.schedule_pickup(ret.id, pickup_details(pickup_date=date(2026, 3, 1)))


def test_pickup_failure_rolls_back_both_writes(new_return, return_tracker, db, monkeypatch):
    ret = return_tracker.approve(new_return().id)

    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("connection reset"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(RecordStoreError):
        return_tracker.schedule_pickup(ret.id, pickup_details())
    monkeypatch.undo()

    assert db.query(ReversePickup).count() == 0
    fresh = return_tracker.get(ret.id)
    assert fresh.status == ReturnStatus.APPROVED
    assert fresh.picked_up_at is None


def test_pickup_is_created_once(new_return, return_tracker):
    ret = return_tracker.approve(new_return().id)
    return_tracker.schedule_pickup(ret.id, pickup_details())
    with pytest.raises(InvalidTransition):
        return_tracker.schedule_pickup(ret.id, pickup_details())


def test_advance_walks_to_completed(new_return, return_tracker, clock):
    ret = return_tracker.approve(new_return().id)
    ret, _ = return_tracker.schedule_pickup(ret.id, pickup_details())
    for target in ("received", "inspected", "refunded", "completed"):
        clock.tick(hours=1)
        ret = return_tracker.advance(ret.id, target)
        assert ret.status == ReturnStatus(target)
    stamps = [getattr(ret, s) for s in RETURN_LIFECYCLE.stamps()]
    assert None not in stamps
    assert stamps == sorted(stamps)
    assert return_tracker.progress(ret)["next_action"] is None


def test_advance_cannot_be_used_for_approval_or_pickup(new_return, return_tracker):
    ret = new_return()
    with pytest.raises(InvalidTransition):
        return_tracker.advance(ret.id, "approved")
    ret = return_tracker.approve(ret.id)
    with pytest.raises(InvalidTransition):
        return_tracker.advance(ret.id, "picked_up")


def test_advance_skipping_is_refused(new_return, return_tracker):
    ret = return_tracker.approve(new_return().id)
    ret, _ = return_tracker.schedule_pickup(ret.id, pickup_details())
    with pytest.raises(InvalidTransition):
        return_tracker.advance(ret.id, "refunded")


def test_return_in_flight_is_refused(new_return, return_tracker, guard):
    ret = new_return()
    with guard.claim(("returns", ret.id)):
        with pytest.raises(AdvanceInFlight):
            return_tracker.approve(ret.id)


def test_counts(new_return, return_tracker):
    a = new_return()
    b = new_return()
    new_return()
    return_tracker.approve(a.id)
    b = return_tracker.approve(b.id)
    return_tracker.schedule_pickup(b.id, pickup_details())
    assert return_tracker.counts() == {"total": 3, "requested": 1, "approved": 1, "in_transit": 1, "completed": 0}
