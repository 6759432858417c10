import logging
import secrets
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import or_

from opsdesk.core.db import utcnow
from opsdesk.core.errors import OpsError
from opsdesk.models.enums import OrderStatus
from opsdesk.models.order import Order
from opsdesk.services.inflight import InFlightGuard
from opsdesk.services.lifecycle import ORDER_LIFECYCLE, Stage
from opsdesk.services.record_store import RecordStore

logger = logging.getLogger(__name__)

PROCESSING = (OrderStatus.CONFIRMED, OrderStatus.PICKED, OrderStatus.PACKED)


def new_order_number(now: datetime) -> str:
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


class OrderTracker:
    """Moves orders through received -> ... -> delivered, one stage per call."""

    lifecycle = ORDER_LIFECYCLE

    def __init__(self, store: RecordStore, guard: InFlightGuard, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.guard = guard
        self.clock = clock

    def list(self, status: OrderStatus | None = None, search: str | None = None) -> list[Order]:
        criteria = []
        if status is not None:
            criteria.append(Order.status == status)
        if search:
            like = f"%{search.strip()}%"
            criteria.append(or_(Order.order_number.ilike(like), Order.customer_name.ilike(like)))
        return self.store.query(Order, *criteria, order_by=Order.order_date.desc())

    def get(self, order_id: int) -> Order:
        return self.store.get(Order, order_id)

    def create(self, data: dict[str, Any]) -> Order:
        # new orders always start at the baseline stage with no stamps
        fields = {k: v for k, v in data.items() if k not in {"status", *self.lifecycle.stamps()}}
        fields.setdefault("order_number", new_order_number(self.clock()))
        order = Order(status=OrderStatus.RECEIVED, order_date=self.clock(), **fields)
        order = self.store.insert(order)
        logger.info("order #%s (%s) received", order.id, order.order_number)
        return order

    def current_stage(self, order: Order) -> Stage:
        return self.lifecycle.check(order)

    def next_action(self, order: Order) -> OrderStatus | None:
        self.lifecycle.check(order)
        nxt = self.lifecycle.progress(order)["next_action"]
        return OrderStatus(nxt) if nxt else None

    def progress(self, order: Order) -> dict[str, Any]:
        return self.lifecycle.progress(order)

    def advance(self, order_id: int, target: OrderStatus | str) -> Order:
        with self.guard.claim(("orders", order_id)):
            order = self.store.get(Order, order_id)
            previous = order.status
            try:
                values = self.lifecycle.plan_advance(order, target, self.clock())
            except OpsError as exc:
                logger.warning("order #%s refused %s: %s", order_id, target, exc.message)
                raise
            stamp = next(k for k in values if k != "status")
            order = self.store.update_by_id(
                Order, order_id, values,
                expected={"status": previous, stamp: None},
            )
        logger.info("order #%s %s -> %s", order_id, previous.value, order.status.value)
        return order

    def counts(self) -> dict[str, int]:
        by_status = self.store.count_by(Order, Order.status)
        return {
            "total": sum(by_status.values()),
            "received": by_status.get(OrderStatus.RECEIVED, 0),
            "processing": sum(by_status.get(s, 0) for s in PROCESSING),
            "shipped": by_status.get(OrderStatus.SHIPPED, 0),
            "delivered": by_status.get(OrderStatus.DELIVERED, 0),
        }
