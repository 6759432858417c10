from opsdesk.models.channel import Channel
from opsdesk.models.credit_note import CreditNote
from opsdesk.models.currency import Currency
from opsdesk.models.customer import Customer
from opsdesk.models.inventory import InventoryItem
from opsdesk.models.invoice import Invoice, InvoiceItem
from opsdesk.models.order import Order
from opsdesk.models.purchase_order import PurchaseOrder
from opsdesk.models.return_request import ReturnRequest
from opsdesk.models.reverse_pickup import ReversePickup
from opsdesk.models.supplier import Supplier
from opsdesk.models.user import PasswordResetToken, RevokedToken, User

__all__ = [
    "Channel",
    "CreditNote",
    "Currency",
    "Customer",
    "InventoryItem",
    "Invoice",
    "InvoiceItem",
    "Order",
    "PasswordResetToken",
    "PurchaseOrder",
    "ReturnRequest",
    "ReversePickup",
    "RevokedToken",
    "Supplier",
    "User",
]
