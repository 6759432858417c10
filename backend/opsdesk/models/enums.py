import enum


class OrderStatus(str, enum.Enum):
    RECEIVED = "received"
    CONFIRMED = "confirmed"
    PICKED = "picked"
    PACKED = "packed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class ReturnStatus(str, enum.Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    PICKED_UP = "picked_up"
    RECEIVED = "received"
    INSPECTED = "inspected"
    REFUNDED = "refunded"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ReturnType(str, enum.Enum):
    REFUND = "refund"
    EXCHANGE = "exchange"
    STORE_CREDIT = "store_credit"


class Carrier(str, enum.Enum):
    FEDEX = "fedex"
    UPS = "ups"
    USPS = "usps"
    DHL = "dhl"
    BLUEDART = "bluedart"
    DELHIVERY = "delhivery"


class PickupSlot(str, enum.Enum):
    MORNING = "9:00 AM - 12:00 PM"
    AFTERNOON = "12:00 PM - 3:00 PM"
    LATE_AFTERNOON = "3:00 PM - 6:00 PM"
    EVENING = "6:00 PM - 9:00 PM"

    @property
    def start_hour(self) -> int:
        return {"MORNING": 9, "AFTERNOON": 12, "LATE_AFTERNOON": 15, "EVENING": 18}[self.name]


class ChannelType(str, enum.Enum):
    SHOPIFY = "shopify"
    AMAZON = "amazon"
    FLIPKART = "flipkart"
    MYNTRA = "myntra"
    MEESHO = "meesho"
    WEBSITE = "website"
    POS = "pos"


class ChannelStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class UserRole(str, enum.Enum):
    OWNER = "owner"
    VIEWER = "viewer"


class SupplierStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class InvoiceType(str, enum.Enum):
    STANDARD = "standard"
    RETAINER = "retainer"
    PROFORMA = "proforma"
    RECURRING = "recurring"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PurchaseOrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class CreditNoteStatus(str, enum.Enum):
    OPEN = "open"
    APPLIED = "applied"
    CANCELLED = "cancelled"
