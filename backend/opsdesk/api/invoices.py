from fastapi import APIRouter, Depends, Response, status

from opsdesk.api.deps import current_user, get_invoice_book, require_owner
from opsdesk.models.enums import InvoiceStatus
from opsdesk.models.invoice import Invoice
from opsdesk.schemas.invoice import (
    InvoiceCreate,
    InvoiceDetail,
    InvoiceItemIn,
    InvoiceItemOut,
    InvoiceOut,
    PaymentIn,
)
from opsdesk.services.invoicing import InvoiceBook

router = APIRouter(prefix="/invoices", tags=["Invoices"], dependencies=[Depends(current_user)])


def invoice_detail(book: InvoiceBook, invoice: Invoice) -> InvoiceDetail:
    return InvoiceDetail(
        **InvoiceOut.model_validate(invoice).model_dump(),
        customer_name=invoice.customer.display_name,
        items=[InvoiceItemOut.model_validate(i) for i in book.items(invoice.id)],
    )


@router.get("", response_model=list[InvoiceOut])
def list_invoices(
    status: InvoiceStatus | None = None,
    search: str | None = None,
    customer_id: int | None = None,
    book: InvoiceBook = Depends(get_invoice_book),
):
    return book.list(status=status, search=search, customer_id=customer_id)


@router.get("/stats")
def invoice_stats(book: InvoiceBook = Depends(get_invoice_book)):
    return book.counts()


@router.post("/mark-overdue", response_model=list[InvoiceOut], dependencies=[Depends(require_owner)])
def mark_overdue(book: InvoiceBook = Depends(get_invoice_book)):
    return book.mark_overdue()


@router.post("", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_owner)])
def create_invoice(payload: InvoiceCreate, book: InvoiceBook = Depends(get_invoice_book)):
    data = payload.model_dump(exclude_none=True, exclude={"items"})
    items = [i.model_dump() for i in payload.items]
    return invoice_detail(book, book.create(data, items))


@router.get("/{invoice_id}", response_model=InvoiceDetail)
def get_invoice(invoice_id: int, book: InvoiceBook = Depends(get_invoice_book)):
    return invoice_detail(book, book.get(invoice_id))


@router.post("/{invoice_id}/items", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_owner)])
def add_item(invoice_id: int, payload: InvoiceItemIn, book: InvoiceBook = Depends(get_invoice_book)):
    return invoice_detail(book, book.add_item(invoice_id, payload.model_dump()))


@router.delete("/{invoice_id}/items/{item_id}", response_model=InvoiceDetail, dependencies=[Depends(require_owner)])
def remove_item(invoice_id: int, item_id: int, book: InvoiceBook = Depends(get_invoice_book)):
    return invoice_detail(book, book.remove_item(invoice_id, item_id))


@router.post("/{invoice_id}/send", response_model=InvoiceDetail, dependencies=[Depends(require_owner)])
def send_invoice(invoice_id: int, book: InvoiceBook = Depends(get_invoice_book)):
    return invoice_detail(book, book.send(invoice_id))


@router.post("/{invoice_id}/payments", response_model=InvoiceDetail, dependencies=[Depends(require_owner)])
def record_payment(invoice_id: int, payload: PaymentIn, book: InvoiceBook = Depends(get_invoice_book)):
    return invoice_detail(book, book.record_payment(invoice_id, payload.amount, payload.paid_on))


@router.post("/{invoice_id}/cancel", response_model=InvoiceDetail, dependencies=[Depends(require_owner)])
def cancel_invoice(invoice_id: int, book: InvoiceBook = Depends(get_invoice_book)):
    return invoice_detail(book, book.cancel(invoice_id))


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_owner)])
def delete_invoice(invoice_id: int, book: InvoiceBook = Depends(get_invoice_book)):
    book.delete(invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
