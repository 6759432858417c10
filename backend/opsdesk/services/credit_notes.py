import logging
import secrets
from collections.abc import Callable
from datetime import datetime
from typing import Any

from opsdesk.core.db import utcnow
from opsdesk.core.errors import InvalidTransition, ValidationFailed
from opsdesk.models.credit_note import CreditNote
from opsdesk.models.customer import Customer
from opsdesk.models.enums import CreditNoteStatus
from opsdesk.models.invoice import Invoice
from opsdesk.services.invoicing import OPEN_STATUSES, InvoiceBook, money
from opsdesk.services.record_store import RecordStore

logger = logging.getLogger(__name__)


def new_credit_note_number(now: datetime) -> str:
    return f"CN-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


class CreditNotes:
    """Customer credit, spent against open invoices."""

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock
        self.invoices = InvoiceBook(store, clock)

    def list(self, status: CreditNoteStatus | None = None, customer_id: int | None = None) -> list[CreditNote]:
        criteria = []
        if status is not None:
            criteria.append(CreditNote.status == status)
        if customer_id is not None:
            criteria.append(CreditNote.customer_id == customer_id)
        return self.store.query(CreditNote, *criteria, order_by=(CreditNote.created_at.desc(), CreditNote.id.desc()))

    def get(self, note_id: int) -> CreditNote:
        return self.store.get(CreditNote, note_id)

    def create(self, data: dict[str, Any]) -> CreditNote:
        customer = self.store.get(Customer, data["customer_id"])
        amount = money(data["amount"])
        if amount <= 0:
            raise ValidationFailed("Credit amount must be greater than 0")
        if data.get("invoice_id") is not None:
            invoice = self.store.get(Invoice, data["invoice_id"])
            if invoice.customer_id != customer.id:
                raise ValidationFailed(f"Invoice {invoice.invoice_number} belongs to another customer")

        fields = {k: v for k, v in data.items() if k not in {"status", "applied_amount", "balance", "amount"}}
        fields.setdefault("credit_note_number", new_credit_note_number(self.clock()))
        fields["issue_date"] = fields.get("issue_date") or self.clock().date()
        fields["currency_code"] = (fields.get("currency_code") or customer.currency_code).upper()

        note = self.store.insert(CreditNote(
            status=CreditNoteStatus.OPEN,
            amount=amount,
            applied_amount=money(0),
            balance=amount,
            created_at=self.clock(),
            **fields,
        ))
        logger.info("credit note #%s (%s) issued to customer #%s for %s", note.id, note.credit_note_number, customer.id, amount)
        return note

    def apply(self, note_id: int, invoice_id: int, amount: Any = None) -> tuple[CreditNote, Invoice]:
        """Spend credit on an invoice.

        Defaults to as much as both sides allow. The credit note and the
        invoice payment are written in one transaction.
        """
        note = self.get(note_id)
        if note.status != CreditNoteStatus.OPEN:
            raise InvalidTransition(f"Credit note {note.credit_note_number} is {note.status.value}")
        invoice = self.invoices.get(invoice_id)
        if invoice.customer_id != note.customer_id:
            raise ValidationFailed("Credit can only be applied to the same customer's invoices")
        if invoice.status not in OPEN_STATUSES:
            raise InvalidTransition(f"Invoice {invoice.invoice_number} is {invoice.status.value} and takes no credit")
        if invoice.currency_code != note.currency_code:
            raise ValidationFailed(f"Credit is in {note.currency_code}; the invoice is in {invoice.currency_code}")

        balance = money(note.balance)
        amount = min(balance, money(invoice.balance_due)) if amount is None else money(amount)
        if amount <= 0:
            raise ValidationFailed("Nothing to apply")
        if amount > balance:
            raise ValidationFailed(f"Only {balance} of credit is left")

        remaining = balance - amount
        with self.store.transaction():
            invoice = self.invoices.record_payment(invoice_id, amount)
            note = self.store.update_by_id(
                CreditNote, note_id,
                {
                    "applied_amount": money(note.applied_amount) + amount,
                    "balance": remaining,
                    "status": CreditNoteStatus.APPLIED if remaining == 0 else CreditNoteStatus.OPEN,
                },
                expected={"status": CreditNoteStatus.OPEN},
            )
        logger.info("credit note #%s applied %s to invoice #%s", note_id, amount, invoice_id)
        return note, invoice

    def cancel(self, note_id: int) -> CreditNote:
        note = self.get(note_id)
        if note.status != CreditNoteStatus.OPEN:
            raise InvalidTransition(f"Credit note {note.credit_note_number} is {note.status.value}")
        if money(note.applied_amount) > 0:
            raise InvalidTransition("Credit that has been applied cannot be cancelled")
        note = self.store.update_by_id(
            CreditNote, note_id, {"status": CreditNoteStatus.CANCELLED, "balance": money(0)},
            expected={"status": CreditNoteStatus.OPEN},
        )
        logger.info("credit note #%s cancelled", note_id)
        return note
