from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from opsdesk.core.errors import InvalidTransition, RecordNotFound, ValidationFailed
from opsdesk.models.currency import Currency
from opsdesk.models.enums import InvoiceStatus
from opsdesk.models.invoice import Invoice, InvoiceItem
from opsdesk.services.invoicing import invoice_totals, price_line

BLANKETS = {"description": "Wool throw", "quantity": 6, "unit_price": "79.00",
            "discount_percent": "10", "tax_percent": "20"}
MUGS = {"description": "Mug", "quantity": 24, "unit_price": "8.50", "tax_percent": "20"}


def test_price_line_discounts_before_tax():
    line = price_line(6, "79.00", 10, 20)
    assert line.gross == Decimal("474.00")
    assert line.discount == Decimal("47.40")
    assert line.line_total == Decimal("426.60")
    assert line.tax == Decimal("85.32")


def test_price_line_rounds_half_up():
    assert price_line(1, "0.05", 0, 50).tax == Decimal("0.03")


@pytest.mark.parametrize("args", [(0, 10), (1, -1), (1, 10, 101), (1, 10, 0, -5)])
def test_price_line_rejects_bad_input(args):
    with pytest.raises(ValidationFailed):
        price_line(*args)


def test_invoice_totals():
    totals = invoice_totals([BLANKETS, MUGS], shipping_amount="12.50", paid_amount="100")
    assert totals["subtotal"] == Decimal("678.00")
    assert totals["discount_amount"] == Decimal("47.40")
    assert totals["tax_amount"] == Decimal("126.12")
    assert totals["total_amount"] == Decimal("769.22")
    assert totals["balance_due"] == Decimal("669.22")


def test_invoice_totals_for_no_items():
    totals = invoice_totals([], shipping_amount=5)
    assert totals["total_amount"] == Decimal("5.00")


def test_create_prices_items_and_defaults_from_customer(invoice_book, new_customer):
    customer = new_customer(currency_code="GBP", payment_terms=14)
    invoice = invoice_book.create({"customer_id": customer.id}, [BLANKETS, MUGS])

    assert invoice.status == InvoiceStatus.DRAFT
    assert invoice.invoice_number.startswith("INV-20260302-")
    assert invoice.issue_date == date(2026, 3, 2)
    assert invoice.due_date == date(2026, 3, 16)
    assert invoice.currency_code == "GBP"
    assert invoice.total_amount == Decimal("756.72")
    assert invoice.balance_due == Decimal("756.72")
    assert [i.line_total for i in invoice_book.items(invoice.id)] == [Decimal("426.60"), Decimal("204.00")]


def test_exchange_rate_comes_from_the_currency_table(invoice_book, new_customer, store):
    store.insert(Currency(code="EUR", name="Euro", symbol="E", exchange_rate=Decimal("0.92")))
    invoice = invoice_book.create({"customer_id": new_customer().id, "currency_code": "eur"}, [MUGS])
    assert invoice.currency_code == "EUR"
    assert invoice.exchange_rate == Decimal("0.92")


def test_inactive_currency_is_refused(invoice_book, new_customer, store):
    store.insert(Currency(code="JPY", name="Yen", exchange_rate=Decimal("150"), is_active=False))
    with pytest.raises(ValidationFailed):
        invoice_book.create({"customer_id": new_customer().id, "currency_code": "JPY"}, [MUGS])


def test_create_for_missing_customer(invoice_book):
    with pytest.raises(RecordNotFound):
        invoice_book.create({"customer_id": 404}, [MUGS])


def test_bad_item_leaves_nothing_behind(invoice_book, new_customer, store):
    customer = new_customer()
    with pytest.raises(ValidationFailed):
        invoice_book.create({"customer_id": customer.id}, [MUGS, {**MUGS, "quantity": 0}])
    assert store.query(Invoice) == []
    assert store.query(InvoiceItem) == []


def test_items_reprice_a_draft(invoice_book, new_customer):
    invoice = invoice_book.create({"customer_id": new_customer().id, "shipping_amount": "5"}, [MUGS])
    assert invoice.total_amount == Decimal("249.80")

    invoice = invoice_book.add_item(invoice.id, {"description": "Card", "quantity": 1, "unit_price": "2.00"})
    assert invoice.total_amount == Decimal("251.80")

    mug_line = invoice_book.items(invoice.id)[0]
    invoice = invoice_book.remove_item(invoice.id, mug_line.id)
    assert invoice.subtotal == Decimal("2.00")
    assert invoice.total_amount == Decimal("7.00")


def test_sent_invoice_is_locked(invoice_book, new_customer):
    invoice = invoice_book.create({"customer_id": new_customer().id}, [MUGS])
    invoice_book.send(invoice.id)
    with pytest.raises(InvalidTransition):
        invoice_book.add_item(invoice.id, MUGS)
    with pytest.raises(InvalidTransition):
        invoice_book.send(invoice.id)


def test_empty_invoice_cannot_be_sent(invoice_book, new_customer):
    invoice = invoice_book.create({"customer_id": new_customer().id})
    with pytest.raises(ValidationFailed):
        invoice_book.send(invoice.id)


def test_payments_settle_the_invoice(invoice_book, new_customer):
    invoice = invoice_book.create({"customer_id": new_customer().id}, [MUGS])
    invoice_book.send(invoice.id)

    invoice = invoice_book.record_payment(invoice.id, "100")
    assert invoice.status == InvoiceStatus.SENT
    assert invoice.balance_due == Decimal("144.80")

    with pytest.raises(ValidationFailed):
        invoice_book.record_payment(invoice.id, "200")

    invoice = invoice_book.record_payment(invoice.id, "144.80")
    assert invoice.status == InvoiceStatus.PAID
    assert invoice.balance_due == Decimal("0.00")
    assert invoice.payment_date == date(2026, 3, 2)


def test_draft_takes_no_payments(invoice_book, new_customer):
    invoice = invoice_book.create({"customer_id": new_customer().id}, [MUGS])
    with pytest.raises(InvalidTransition):
        invoice_book.record_payment(invoice.id, "10")


def test_cancel_only_without_payments(invoice_book, new_customer):
    paid = invoice_book.create({"customer_id": new_customer().id}, [MUGS])
    invoice_book.send(paid.id)
    invoice_book.record_payment(paid.id, "10")
    with pytest.raises(InvalidTransition):
        invoice_book.cancel(paid.id)
    with pytest.raises(InvalidTransition):
        invoice_book.delete(paid.id)

    draft = invoice_book.create({"customer_id": paid.customer_id}, [MUGS])
    assert invoice_book.cancel(draft.id).status == InvoiceStatus.CANCELLED


def test_mark_overdue(invoice_book, new_customer):
    customer = new_customer()
    late = invoice_book.create(
        {"customer_id": customer.id, "issue_date": date(2026, 2, 1), "due_date": date(2026, 2, 15)}, [MUGS]
    )
    current = invoice_book.create({"customer_id": customer.id}, [MUGS])
    draft = invoice_book.create(
        {"customer_id": customer.id, "issue_date": date(2026, 2, 1), "due_date": date(2026, 2, 15)}, [MUGS]
    )
    invoice_book.send(late.id)
    invoice_book.send(current.id)

    marked = invoice_book.mark_overdue()
    assert [i.id for i in marked] == [late.id]
    assert invoice_book.get(draft.id).status == InvoiceStatus.DRAFT
    assert invoice_book.counts()["overdue"] == 1


def test_due_date_before_issue_date(invoice_book, new_customer):
    with pytest.raises(ValidationFailed):
        invoice_book.create(
            {"customer_id": new_customer().id, "issue_date": date(2026, 3, 2), "due_date": date(2026, 3, 1)}
        )


def test_delete_removes_items(invoice_book, new_customer, store):
    invoice = invoice_book.create({"customer_id": new_customer().id}, [MUGS, BLANKETS])
    invoice_book.delete(invoice.id)
    assert store.query(InvoiceItem) == []
