import logging
import secrets
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import or_

from opsdesk.core.db import utcnow
from opsdesk.core.errors import InvalidTransition, ValidationFailed
from opsdesk.models.enums import PurchaseOrderStatus, SupplierStatus
from opsdesk.models.purchase_order import PurchaseOrder
from opsdesk.models.supplier import Supplier
from opsdesk.services.invoicing import money
from opsdesk.services.record_store import RecordStore

logger = logging.getLogger(__name__)

CLOSED = (PurchaseOrderStatus.DELIVERED, PurchaseOrderStatus.CANCELLED)


def new_po_number(now: datetime) -> str:
    return f"PO-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def price_po_items(items: list[dict[str, Any]]) -> tuple[list[dict[str, Any]], Decimal]:
    """Normalise purchase order lines and return them with the order total."""
    if not items:
        raise ValidationFailed("A purchase order needs at least one item")
    lines, total = [], Decimal("0.00")
    for item in items:
        quantity = int(item["quantity"])
        unit_price = money(item["unit_price"])
        if quantity <= 0:
            raise ValidationFailed("Quantity must be greater than 0")
        if unit_price < 0:
            raise ValidationFailed("Unit price cannot be negative")
        line_total = money(unit_price * quantity)
        lines.append({
            "item_id": item.get("item_id"),
            "item_name": item["item_name"],
            "quantity": quantity,
            "unit_price": float(unit_price),
            "total": float(line_total),
        })
        total += line_total
    return lines, total


class Purchasing:
    """Purchase orders placed with suppliers."""

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def list(self, status: PurchaseOrderStatus | None = None, search: str | None = None,
             supplier_id: int | None = None) -> list[PurchaseOrder]:
        criteria = []
        if status is not None:
            criteria.append(PurchaseOrder.status == status)
        if supplier_id is not None:
            criteria.append(PurchaseOrder.supplier_id == supplier_id)
        if search:
            like = f"%{search.strip()}%"
            criteria.append(or_(PurchaseOrder.order_number.ilike(like), PurchaseOrder.supplier_name.ilike(like)))
        return self.store.query(
            PurchaseOrder, *criteria, order_by=(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        )

    def get(self, po_id: int) -> PurchaseOrder:
        return self.store.get(PurchaseOrder, po_id)

    def create(self, data: dict[str, Any]) -> PurchaseOrder:
        supplier = self.store.get(Supplier, data["supplier_id"])
        if supplier.status != SupplierStatus.ACTIVE:
            raise ValidationFailed(f"Supplier {supplier.name} is inactive")

        fields = {k: v for k, v in data.items() if k not in {"status", "received_date", "total_amount", "items"}}
        fields["items"], fields["total_amount"] = price_po_items(data.get("items") or [])
        fields["order_date"] = fields.get("order_date") or self.clock().date()
        if fields.get("expected_date") and fields["expected_date"] < fields["order_date"]:
            raise ValidationFailed("Expected date cannot be before the order date")
        fields.setdefault("order_number", new_po_number(self.clock()))
        fields["supplier_name"] = supplier.name

        po = self.store.insert(PurchaseOrder(status=PurchaseOrderStatus.PENDING, created_at=self.clock(), **fields))
        logger.info("purchase order #%s (%s) placed with supplier #%s", po.id, po.order_number, supplier.id)
        return po

    def update(self, po_id: int, values: dict[str, Any]) -> PurchaseOrder:
        po = self.get(po_id)
        if po.status in CLOSED:
            raise InvalidTransition(f"Purchase order {po.order_number} is {po.status.value} and can no longer change")

        values = dict(values)
        if "items" in values:
            if po.status != PurchaseOrderStatus.PENDING:
                raise InvalidTransition("Items can only change while the order is pending")
            values["items"], values["total_amount"] = price_po_items(values["items"] or [])
        if values.get("status") == PurchaseOrderStatus.DELIVERED:
            values["received_date"] = self.clock().date()
        po = self.store.update_by_id(PurchaseOrder, po_id, values, expected={"status": po.status})
        logger.info("purchase order #%s updated (%s)", po_id, po.status.value)
        return po

    def delete(self, po_id: int) -> None:
        po = self.get(po_id)
        if po.status == PurchaseOrderStatus.DELIVERED:
            raise InvalidTransition("A delivered purchase order cannot be deleted")
        self.store.delete_by_id(PurchaseOrder, po_id)
        logger.info("purchase order #%s deleted", po_id)
