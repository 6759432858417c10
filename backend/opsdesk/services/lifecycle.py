"""Stage charts for orders and returns.

A record's stage is never read from its ``status`` column alone. It is derived
from which stage timestamps are set, and ``status`` is checked against it.
Nothing in this module touches the database.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from opsdesk.core.db import as_utc
from opsdesk.core.errors import DataIntegrityError, InvalidTransition, ValidationFailed
from opsdesk.models.enums import OrderStatus, ReturnStatus


@dataclass(frozen=True)
class Stage:
    status: enum.Enum
    stamp: str | None  # timestamp attribute; None for the baseline stage

    @property
    def label(self) -> str:
        return self.status.value.replace("_", " ").title()


class Lifecycle:
    """A fixed linear sequence of stages plus side exits.

    ``exits`` maps an off-sequence status (rejected, cancelled) to the set of
    stages a record may be sitting at when it carries that status. Exit
    statuses are terminal.
    """

    def __init__(self, name: str, stages: tuple[Stage, ...], exits: dict[enum.Enum, frozenset[enum.Enum]]):
        self.name = name
        self.stages = stages
        self.exits = exits
        self.status_enum = type(stages[0].status)
        self._index = {s.status: i for i, s in enumerate(stages)}

    def coerce(self, status: Any) -> enum.Enum:
        try:
            return self.status_enum(status)
        except ValueError:
            raise ValidationFailed(f"'{status}' is not a valid {self.name} status") from None

    def index(self, status: enum.Enum) -> int:
        return self._index[status]

    def stamps(self) -> list[str]:
        return [s.stamp for s in self.stages if s.stamp]

    def derive(self, record) -> Stage:
        current = self.stages[0]
        for stage in self.stages[1:]:
            if getattr(record, stage.stamp) is not None:
                current = stage
        return current

    def successor(self, stage: Stage) -> Stage | None:
        i = self._index[stage.status] + 1
        return self.stages[i] if i < len(self.stages) else None

    def is_terminal(self, status: enum.Enum) -> bool:
        return status in self.exits or status == self.stages[-1].status

    def check(self, record) -> Stage:
        """Return the derived stage, or raise if the record contradicts itself."""
        ref = f"{self.name} #{getattr(record, 'id', '?')}"
        previous_stamp = None
        previous_name = None
        gap = None
        for stage in self.stages[1:]:
            value = getattr(record, stage.stamp)
            if value is None:
                gap = gap or stage.stamp
                continue
            if gap is not None:
                raise DataIntegrityError(f"{ref} has {stage.stamp} set while {gap} is empty")
            value = as_utc(value)
            if previous_stamp is not None and value < previous_stamp:
                raise DataIntegrityError(f"{ref} has {stage.stamp} earlier than {previous_name}")
            previous_stamp, previous_name = value, stage.stamp

        derived = self.derive(record)
        status = self.coerce(record.status)
        if status in self.exits:
            if derived.status not in self.exits[status]:
                raise DataIntegrityError(
                    f"{ref} is {status.value} but its timestamps say {derived.status.value}"
                )
        elif status != derived.status:
            raise DataIntegrityError(
                f"{ref} is {status.value} but its timestamps say {derived.status.value}"
            )
        return derived

    def latest_stamp(self, record) -> datetime | None:
        values = [getattr(record, s) for s in self.stamps()]
        values = [as_utc(v) for v in values if v is not None]
        return max(values) if values else None

    def plan_advance(self, record, target: Any, now: datetime) -> dict[str, Any]:
        """Column values that move ``record`` to ``target``.

        ``target`` must be the immediate successor of the derived stage.
        Exactly one stamp is included.
        """
        target = self.coerce(target)
        current = self.check(record)
        status = self.coerce(record.status)
        if status in self.exits:
            raise InvalidTransition(f"{self.name} is {status.value}, which is final")
        nxt = self.successor(current)
        if nxt is None:
            raise InvalidTransition(f"{self.name} is already {current.status.value}")
        if target != nxt.status:
            raise InvalidTransition(
                f"{self.name} cannot move from {current.status.value} to {target.value}; "
                f"the next stage is {nxt.status.value}"
            )
        latest = self.latest_stamp(record)
        now = as_utc(now)
        if latest is not None and now < latest:
            # clock skew between writers; keep stamps ordered
            now = latest
        return {"status": nxt.status, nxt.stamp: now}

    def progress(self, record) -> dict[str, Any]:
        stage = self.derive(record)
        nxt = None if self.is_terminal(self.coerce(record.status)) else self.successor(stage)
        return {
            "stage": stage.status.value,
            "stage_index": self._index[stage.status],
            "stage_count": len(self.stages),
            "next_action": nxt.status.value if nxt else None,
            "timeline": [
                {
                    "status": s.status.value,
                    "label": s.label,
                    "at": getattr(record, s.stamp) if s.stamp else None,
                    "done": self._index[s.status] <= self._index[stage.status],
                }
                for s in self.stages
            ],
        }


ORDER_LIFECYCLE = Lifecycle(
    "order",
    (
        Stage(OrderStatus.RECEIVED, None),
        Stage(OrderStatus.CONFIRMED, "confirmed_at"),
        Stage(OrderStatus.PICKED, "picked_at"),
        Stage(OrderStatus.PACKED, "packed_at"),
        Stage(OrderStatus.SHIPPED, "shipped_at"),
        Stage(OrderStatus.DELIVERED, "delivered_at"),
    ),
    exits={
        OrderStatus.CANCELLED: frozenset(
            s for s in OrderStatus if s not in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)
        ),
    },
)

RETURN_LIFECYCLE = Lifecycle(
    "return",
    (
        Stage(ReturnStatus.REQUESTED, None),
        Stage(ReturnStatus.APPROVED, "approved_at"),
        Stage(ReturnStatus.PICKED_UP, "picked_up_at"),
        Stage(ReturnStatus.RECEIVED, "received_at"),
        Stage(ReturnStatus.INSPECTED, "inspected_at"),
        Stage(ReturnStatus.REFUNDED, "refunded_at"),
        Stage(ReturnStatus.COMPLETED, "completed_at"),
    ),
    exits={
        ReturnStatus.REJECTED: frozenset({ReturnStatus.REQUESTED}),
        ReturnStatus.CANCELLED: frozenset({
            ReturnStatus.REQUESTED,
            ReturnStatus.APPROVED,
            ReturnStatus.PICKED_UP,
            ReturnStatus.RECEIVED,
            ReturnStatus.INSPECTED,
        }),
    },
)
