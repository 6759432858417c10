from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from opsdesk.models.enums import PurchaseOrderStatus


class PurchaseOrderLine(BaseModel):
    item_id: int | None = None
    item_name: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0)
    total: Decimal | None = None


class PurchaseOrderCreate(BaseModel):
    supplier_id: int
    order_number: str | None = Field(default=None, max_length=40)
    order_date: date | None = None
    expected_date: date | None = None
    notes: str = ""
    items: list[PurchaseOrderLine] = Field(min_length=1)


class PurchaseOrderUpdate(BaseModel):
    expected_date: date | None = None
    notes: str | None = None
    status: PurchaseOrderStatus | None = None
    items: list[PurchaseOrderLine] | None = Field(default=None, min_length=1)


class PurchaseOrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    supplier_id: int
    supplier_name: str
    items: list[PurchaseOrderLine]
    order_date: date
    expected_date: date | None
    received_date: date | None
    status: PurchaseOrderStatus
    total_amount: Decimal
    notes: str
    created_at: datetime
