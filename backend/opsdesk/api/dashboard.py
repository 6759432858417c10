from fastapi import APIRouter, Depends

from opsdesk.api.deps import current_user, get_invoice_book, get_order_tracker, get_return_tracker, get_store
from opsdesk.models.inventory import InventoryItem
from opsdesk.services.invoicing import InvoiceBook
from opsdesk.services.order_tracker import OrderTracker
from opsdesk.services.record_store import RecordStore
from opsdesk.services.return_tracker import ReturnTracker
from opsdesk.services.stock import stock_summary

router = APIRouter(prefix="/dashboard", tags=["Dashboard"], dependencies=[Depends(current_user)])


@router.get("/stats")
def dashboard_stats(
    store: RecordStore = Depends(get_store),
    orders: OrderTracker = Depends(get_order_tracker),
    returns: ReturnTracker = Depends(get_return_tracker),
    invoices: InvoiceBook = Depends(get_invoice_book),
):
    return {
        "orders": orders.counts(),
        "returns": returns.counts(),
        "invoices": invoices.counts(),
        "stock": stock_summary(store.query(InventoryItem)),
    }
