from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from opsdesk.models.enums import InvoiceStatus, InvoiceType


class InvoiceItemIn(BaseModel):
    inventory_id: int | None = None
    description: str = Field(min_length=1, max_length=255)
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    unit_price: Decimal = Field(ge=0)
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    tax_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class InvoiceCreate(BaseModel):
    customer_id: int
    invoice_number: str | None = Field(default=None, max_length=40)
    invoice_type: InvoiceType = InvoiceType.STANDARD
    issue_date: date | None = None
    due_date: date | None = None
    currency_code: str | None = Field(default=None, min_length=3, max_length=3)
    shipping_amount: Decimal = Field(default=Decimal("0"), ge=0)
    notes: str = ""
    terms_and_conditions: str = ""
    language: str | None = Field(default=None, max_length=8)
    items: list[InvoiceItemIn] = []


class PaymentIn(BaseModel):
    amount: Decimal = Field(gt=0)
    paid_on: date | None = None


class InvoiceItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    inventory_id: int | None
    description: str
    quantity: Decimal
    unit_price: Decimal
    discount_percent: Decimal
    tax_percent: Decimal
    line_total: Decimal


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    customer_id: int
    invoice_type: InvoiceType
    status: InvoiceStatus
    issue_date: date
    due_date: date
    payment_date: date | None
    currency_code: str
    exchange_rate: Decimal
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    balance_due: Decimal
    notes: str
    terms_and_conditions: str
    language: str
    created_at: datetime


class InvoiceDetail(InvoiceOut):
    customer_name: str
    items: list[InvoiceItemOut]
