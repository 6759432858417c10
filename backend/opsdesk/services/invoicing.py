"""Invoices and their line items.

Money columns on an invoice are never written from request data. They are
recomputed from the items, shipping and payments every time one of those
changes, inside the same transaction as the change.
"""
from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import or_, select

from opsdesk.core.db import utcnow
from opsdesk.core.errors import InvalidTransition, ValidationFailed
from opsdesk.models.currency import Currency
from opsdesk.models.customer import Customer
from opsdesk.models.enums import InvoiceStatus
from opsdesk.models.invoice import Invoice, InvoiceItem
from opsdesk.services.record_store import RecordStore

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

# still waiting for money
OPEN_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.VIEWED, InvoiceStatus.OVERDUE)


def money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineAmounts:
    gross: Decimal
    discount: Decimal
    tax: Decimal
    line_total: Decimal  # gross - discount


def price_line(quantity: Any, unit_price: Any, discount_percent: Any = 0, tax_percent: Any = 0) -> LineAmounts:
    quantity = Decimal(str(quantity))
    unit_price = Decimal(str(unit_price))
    discount_percent = Decimal(str(discount_percent or 0))
    tax_percent = Decimal(str(tax_percent or 0))
    if quantity <= 0:
        raise ValidationFailed("Quantity must be greater than 0")
    if unit_price < 0:
        raise ValidationFailed("Unit price cannot be negative")
    if not (0 <= discount_percent <= 100) or not (0 <= tax_percent <= 100):
        raise ValidationFailed("Discount and tax must be percentages between 0 and 100")

    gross = money(quantity * unit_price)
    discount = money(gross * discount_percent / HUNDRED)
    net = gross - discount
    tax = money(net * tax_percent / HUNDRED)
    return LineAmounts(gross=gross, discount=discount, tax=tax, line_total=net)


def invoice_totals(items: Iterable[Any], shipping_amount: Any = 0, paid_amount: Any = 0) -> dict[str, Decimal]:
    """Header amounts for a set of items (rows or dicts with the item fields)."""
    subtotal = discount = tax = Decimal("0.00")
    for item in items:
        get = item.get if isinstance(item, dict) else lambda k, _i=item: getattr(_i, k)
        amounts = price_line(get("quantity"), get("unit_price"), get("discount_percent"), get("tax_percent"))
        subtotal += amounts.gross
        discount += amounts.discount
        tax += amounts.tax
    shipping = money(shipping_amount)
    total = subtotal - discount + tax + shipping
    paid = money(paid_amount)
    return {
        "subtotal": subtotal,
        "discount_amount": discount,
        "tax_amount": tax,
        "shipping_amount": shipping,
        "total_amount": total,
        "paid_amount": paid,
        "balance_due": total - paid,
    }


def new_invoice_number(now: datetime) -> str:
    return f"INV-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


class InvoiceBook:
    """Create, price, send and settle invoices."""

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def list(self, status: InvoiceStatus | None = None, search: str | None = None,
             customer_id: int | None = None) -> list[Invoice]:
        criteria = []
        if status is not None:
            criteria.append(Invoice.status == status)
        if customer_id is not None:
            criteria.append(Invoice.customer_id == customer_id)
        if search:
            like = f"%{search.strip()}%"
            matching = Invoice.customer_id.in_(
                select(Customer.id).where(
                    or_(Customer.contact_name.ilike(like), Customer.company_name.ilike(like)))
            )
            criteria.append(or_(Invoice.invoice_number.ilike(like), matching))
        return self.store.query(Invoice, *criteria, order_by=(Invoice.created_at.desc(), Invoice.id.desc()))

    def get(self, invoice_id: int) -> Invoice:
        return self.store.get(Invoice, invoice_id)

    def items(self, invoice_id: int) -> list[InvoiceItem]:
        return self.store.query(InvoiceItem, InvoiceItem.invoice_id == invoice_id, order_by=InvoiceItem.id.asc())

    def _exchange_rate(self, code: str) -> Decimal:
        currency = self.store.find(Currency, code)
        if currency is None:
            return Decimal("1")
        if not currency.is_active:
            raise ValidationFailed(f"Currency {code} is not active")
        return Decimal(str(currency.exchange_rate))

    def _item_row(self, invoice_id: int, data: dict[str, Any]) -> InvoiceItem:
        amounts = price_line(
            data.get("quantity", 1), data.get("unit_price", 0),
            data.get("discount_percent", 0), data.get("tax_percent", 0),
        )
        return InvoiceItem(
            invoice_id=invoice_id,
            inventory_id=data.get("inventory_id"),
            description=data["description"],
            quantity=Decimal(str(data.get("quantity", 1))),
            unit_price=money(data.get("unit_price", 0)),
            discount_percent=Decimal(str(data.get("discount_percent") or 0)),
            tax_percent=Decimal(str(data.get("tax_percent") or 0)),
            line_total=amounts.line_total,
        )

    def _reprice(self, invoice: Invoice) -> Invoice:
        totals = invoice_totals(self.items(invoice.id), invoice.shipping_amount, invoice.paid_amount)
        if totals["balance_due"] < 0:
            raise ValidationFailed("Payments would exceed the invoice total")
        return self.store.update_by_id(Invoice, invoice.id, totals)

    def create(self, data: dict[str, Any], items: list[dict[str, Any]] | None = None) -> Invoice:
        customer = self.store.get(Customer, data["customer_id"])
        fields = {
            k: v for k, v in data.items()
            if k not in {"status", "payment_date", "exchange_rate", "subtotal", "discount_amount",
                         "tax_amount", "total_amount", "paid_amount", "balance_due"}
        }
        today = self.clock().date()
        fields.setdefault("invoice_number", new_invoice_number(self.clock()))
        fields["issue_date"] = fields.get("issue_date") or today
        fields["due_date"] = fields.get("due_date") or fields["issue_date"] + timedelta(days=customer.payment_terms)
        if fields["due_date"] < fields["issue_date"]:
            raise ValidationFailed("Due date cannot be before the issue date")
        fields["currency_code"] = (fields.get("currency_code") or customer.currency_code).upper()
        fields["language"] = fields.get("language") or customer.preferred_language
        fields["shipping_amount"] = money(fields.get("shipping_amount"))

        with self.store.transaction():
            invoice = self.store.insert(Invoice(
                status=InvoiceStatus.DRAFT,
                exchange_rate=self._exchange_rate(fields["currency_code"]),
                created_at=self.clock(),
                **fields,
            ))
            for item in items or []:
                self.store.insert(self._item_row(invoice.id, item))
            invoice = self._reprice(invoice)
        logger.info("invoice #%s (%s) drafted for customer #%s", invoice.id, invoice.invoice_number, customer.id)
        return invoice

    def _editable(self, invoice: Invoice) -> None:
        if invoice.status != InvoiceStatus.DRAFT:
            raise InvalidTransition(f"Invoice {invoice.invoice_number} is {invoice.status.value}; only drafts can be edited")

    def add_item(self, invoice_id: int, data: dict[str, Any]) -> Invoice:
        invoice = self.get(invoice_id)
        self._editable(invoice)
        with self.store.transaction():
            self.store.insert(self._item_row(invoice.id, data))
            invoice = self._reprice(invoice)
        return invoice

    def remove_item(self, invoice_id: int, item_id: int) -> Invoice:
        invoice = self.get(invoice_id)
        self._editable(invoice)
        item = self.store.get(InvoiceItem, item_id)
        if item.invoice_id != invoice.id:
            raise ValidationFailed(f"Item #{item_id} does not belong to invoice {invoice.invoice_number}")
        with self.store.transaction():
            self.store.delete_by_id(InvoiceItem, item_id)
            invoice = self._reprice(invoice)
        return invoice

    def send(self, invoice_id: int) -> Invoice:
        invoice = self.get(invoice_id)
        self._editable(invoice)
        if not self.items(invoice.id):
            raise ValidationFailed("Add at least one item before sending")
        invoice = self.store.update_by_id(
            Invoice, invoice_id, {"status": InvoiceStatus.SENT},
            expected={"status": InvoiceStatus.DRAFT},
        )
        logger.info("invoice #%s sent", invoice_id)
        return invoice

    def record_payment(self, invoice_id: int, amount: Any, paid_on: date | None = None) -> Invoice:
        amount = money(amount)
        if amount <= 0:
            raise ValidationFailed("Payment amount must be greater than 0")
        invoice = self.get(invoice_id)
        if invoice.status not in OPEN_STATUSES:
            raise InvalidTransition(f"Invoice {invoice.invoice_number} is {invoice.status.value} and takes no payments")
        return self._apply_payment(invoice, amount, paid_on or self.clock().date())

    def _apply_payment(self, invoice: Invoice, amount: Decimal, paid_on: date) -> Invoice:
        paid = money(invoice.paid_amount) + amount
        balance = money(invoice.total_amount) - paid
        if balance < 0:
            raise ValidationFailed(f"Payment exceeds the balance due of {money(invoice.balance_due)}")
        values: dict[str, Any] = {"paid_amount": paid, "balance_due": balance}
        if balance == 0:
            values.update(status=InvoiceStatus.PAID, payment_date=paid_on)
        invoice = self.store.update_by_id(
            Invoice, invoice.id, values,
            expected={"status": invoice.status},
        )
        logger.info("invoice #%s received %s, balance %s", invoice.id, amount, balance)
        return invoice

    def cancel(self, invoice_id: int) -> Invoice:
        invoice = self.get(invoice_id)
        if invoice.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED):
            raise InvalidTransition(f"Invoice {invoice.invoice_number} is already {invoice.status.value}")
        if money(invoice.paid_amount) > 0:
            raise InvalidTransition("An invoice with payments cannot be cancelled; issue a credit note instead")
        invoice = self.store.update_by_id(
            Invoice, invoice_id, {"status": InvoiceStatus.CANCELLED},
            expected={"status": invoice.status},
        )
        logger.info("invoice #%s cancelled", invoice_id)
        return invoice

    def mark_overdue(self) -> list[Invoice]:
        today = self.clock().date()
        late = self.store.query(
            Invoice,
            Invoice.status.in_((InvoiceStatus.SENT, InvoiceStatus.VIEWED)),
            Invoice.due_date < today,
            Invoice.balance_due > 0,
        )
        marked = []
        with self.store.transaction():
            for invoice in late:
                marked.append(self.store.update_by_id(
                    Invoice, invoice.id, {"status": InvoiceStatus.OVERDUE},
                    expected={"status": invoice.status},
                ))
        if marked:
            logger.info("marked %d invoice(s) overdue", len(marked))
        return marked

    def delete(self, invoice_id: int) -> None:
        invoice = self.get(invoice_id)
        if money(invoice.paid_amount) > 0:
            raise InvalidTransition("An invoice with payments cannot be deleted")
        self.store.delete_by_id(Invoice, invoice_id)
        logger.info("invoice #%s deleted", invoice_id)

    def counts(self) -> dict[str, Any]:
        by_status = self.store.count_by(Invoice, Invoice.status)
        outstanding = sum(
            (money(i.balance_due) for i in self.store.query(Invoice, Invoice.status.in_(OPEN_STATUSES))),
            Decimal("0"),
        )
        return {
            "total": sum(by_status.values()),
            "paid": by_status.get(InvoiceStatus.PAID, 0),
            "pending": sum(by_status.get(s, 0) for s in (InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.VIEWED)),
            "overdue": by_status.get(InvoiceStatus.OVERDUE, 0),
            "outstanding": float(outstanding),
        }
