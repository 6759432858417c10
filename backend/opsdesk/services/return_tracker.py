import logging
import secrets
from collections.abc import Callable
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import or_

from opsdesk.core.db import utcnow
from opsdesk.core.errors import InvalidTransition, OpsError, ValidationFailed
from opsdesk.models.enums import Carrier, OrderStatus, PickupSlot, ReturnStatus
from opsdesk.models.order import Order
from opsdesk.models.return_request import ReturnRequest
from opsdesk.models.reverse_pickup import ReversePickup
from opsdesk.services.inflight import InFlightGuard
from opsdesk.services.lifecycle import RETURN_LIFECYCLE, Stage
from opsdesk.services.record_store import RecordStore

logger = logging.getLogger(__name__)

# stages reachable through advance(); approval and pickup have their own calls
ADVANCEABLE = (
    ReturnStatus.RECEIVED,
    ReturnStatus.INSPECTED,
    ReturnStatus.REFUNDED,
    ReturnStatus.COMPLETED,
)


def new_return_number(now: datetime) -> str:
    return f"RET-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def pickup_start(pickup_date: date, slot: PickupSlot) -> datetime:
    return datetime.combine(pickup_date, time(hour=slot.start_hour), tzinfo=timezone.utc)


class ReturnTracker:
    """Returns: requested -> approved -> picked_up -> ... -> completed, or rejected."""

    lifecycle = RETURN_LIFECYCLE

    def __init__(self, store: RecordStore, guard: InFlightGuard, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.guard = guard
        self.clock = clock

    def list(self, status: ReturnStatus | None = None, search: str | None = None) -> list[ReturnRequest]:
        criteria = []
        if status is not None:
            criteria.append(ReturnRequest.status == status)
        if search:
            like = f"%{search.strip()}%"
            criteria.append(or_(ReturnRequest.return_number.ilike(like), ReturnRequest.customer_name.ilike(like)))
        return self.store.query(ReturnRequest, *criteria, order_by=ReturnRequest.created_at.desc())

    def get(self, return_id: int) -> ReturnRequest:
        return self.store.get(ReturnRequest, return_id)

    def current_stage(self, ret: ReturnRequest) -> Stage:
        return self.lifecycle.check(ret)

    def progress(self, ret: ReturnRequest) -> dict[str, Any]:
        return self.lifecycle.progress(ret)

    def create(self, data: dict[str, Any]) -> ReturnRequest:
        order = self.store.get(Order, data["order_id"])
        if order.status == OrderStatus.CANCELLED:
            raise ValidationFailed(f"Order {order.order_number} was cancelled and cannot be returned")

        fields = {k: v for k, v in data.items() if k not in {"status", *self.lifecycle.stamps(), "pickup_scheduled_at"}}
        refund = fields.get("refund_amount")
        if refund is None:
            refund = order.total_amount or 0
        refund = Decimal(str(refund))
        if refund < 0 or refund > Decimal(str(order.total_amount or 0)):
            raise ValidationFailed("Refund amount must be between 0 and the order total")
        fields["refund_amount"] = refund
        if not fields.get("pickup_address"):
            fields["pickup_address"] = ", ".join(
                p for p in (order.shipping_address, order.shipping_city, order.shipping_state) if p
            )
        fields.setdefault("return_number", new_return_number(self.clock()))
        fields.setdefault("customer_name", order.customer_name)
        fields.setdefault("customer_email", order.customer_email)

        ret = ReturnRequest(status=ReturnStatus.REQUESTED, created_at=self.clock(), **fields)
        ret = self.store.insert(ret)
        logger.info("return #%s (%s) requested for order #%s", ret.id, ret.return_number, order.id)
        return ret

    def _move(self, return_id: int, target: ReturnStatus, extra: dict[str, Any] | None = None) -> ReturnRequest:
        ret = self.store.get(ReturnRequest, return_id)
        previous = ret.status
        try:
            values = self.lifecycle.plan_advance(ret, target, self.clock())
        except OpsError as exc:
            logger.warning("return #%s refused %s: %s", return_id, target, exc.message)
            raise
        stamp = next(k for k in values if k != "status")
        values.update(extra or {})
        ret = self.store.update_by_id(
            ReturnRequest, return_id, values,
            expected={"status": previous, stamp: None},
        )
        logger.info("return #%s %s -> %s", return_id, previous.value, ret.status.value)
        return ret

    def approve(self, return_id: int) -> ReturnRequest:
        with self.guard.claim(("returns", return_id)):
            return self._move(return_id, ReturnStatus.APPROVED)

    def reject(self, return_id: int) -> ReturnRequest:
        with self.guard.claim(("returns", return_id)):
            ret = self.store.get(ReturnRequest, return_id)
            self.lifecycle.check(ret)
            if ret.status != ReturnStatus.REQUESTED:
                logger.warning("return #%s refused reject from %s", return_id, ret.status.value)
                raise InvalidTransition(f"Only requested returns can be rejected; this one is {ret.status.value}")
            # terminal, no stamp
            ret = self.store.update_by_id(
                ReturnRequest, return_id, {"status": ReturnStatus.REJECTED},
                expected={"status": ReturnStatus.REQUESTED, "approved_at": None},
            )
        logger.info("return #%s requested -> rejected", return_id)
        return ret

    def schedule_pickup(self, return_id: int, pickup: dict[str, Any],
                        user_id: int | None = None) -> tuple[ReturnRequest, ReversePickup]:
        """Book the carrier pickup and move the return to picked_up.

        The pickup insert and the return update share one transaction, so
        either both are stored or neither is.
        """
        with self.guard.claim(("returns", return_id)):
            ret = self.store.get(ReturnRequest, return_id)
            self.lifecycle.check(ret)
            if ret.status != ReturnStatus.APPROVED:
                raise InvalidTransition(f"A pickup can only be scheduled for an approved return; this one is {ret.status.value}")

            pickup = dict(pickup)
            if pickup["pickup_date"] < self.clock().date():
                raise ValidationFailed("Pickup date is in the past")
            if not pickup.get("pickup_address"):
                pickup["pickup_address"] = ret.pickup_address
            if not pickup.get("pickup_address"):
                raise ValidationFailed("A pickup address is required")
            slot = PickupSlot(pickup["pickup_time_slot"])
            pickup["pickup_time_slot"] = slot
            pickup["carrier"] = Carrier(pickup["carrier"])

            with self.store.transaction():
                row = self.store.insert(ReversePickup(return_id=return_id, created_by=user_id, **pickup))
                ret = self._move(
                    return_id,
                    ReturnStatus.PICKED_UP,
                    extra={
                        "carrier": row.carrier.value,
                        "pickup_scheduled_at": pickup_start(row.pickup_date, slot),
                    },
                )
        logger.info("return #%s pickup #%s booked with %s", return_id, row.id, row.carrier.value)
        return ret, row

    def advance(self, return_id: int, target: ReturnStatus | str) -> ReturnRequest:
        target = self.lifecycle.coerce(target)
        if target not in ADVANCEABLE:
            raise InvalidTransition(f"Use the dedicated action to move a return to {target.value}")
        with self.guard.claim(("returns", return_id)):
            return self._move(return_id, target)

    def counts(self) -> dict[str, int]:
        by_status = self.store.count_by(ReturnRequest, ReturnRequest.status)
        return {
            "total": sum(by_status.values()),
            "requested": by_status.get(ReturnStatus.REQUESTED, 0),
            "approved": by_status.get(ReturnStatus.APPROVED, 0),
            "in_transit": by_status.get(ReturnStatus.PICKED_UP, 0),
            "completed": by_status.get(ReturnStatus.COMPLETED, 0),
        }
