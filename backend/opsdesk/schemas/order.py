from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from opsdesk.models.enums import OrderStatus, PaymentStatus


class OrderCreate(BaseModel):
    order_number: str | None = Field(default=None, max_length=40)
    customer_name: str = Field(min_length=1, max_length=120)
    customer_email: EmailStr | None = None
    customer_phone: str = ""
    payment_status: PaymentStatus = PaymentStatus.PENDING
    total_amount: Decimal = Field(default=Decimal("0"), ge=0)
    currency_code: str = Field(default="USD", min_length=3, max_length=3)
    shipping_address: str = ""
    shipping_city: str = ""
    shipping_state: str = ""
    carrier: str | None = None
    tracking_number: str | None = None
    channel_id: int | None = None


class OrderAdvance(BaseModel):
    status: OrderStatus


class TimelineEntry(BaseModel):
    status: str
    label: str
    at: datetime | None
    done: bool


class Progress(BaseModel):
    stage: str
    stage_index: int
    stage_count: int
    next_action: str | None
    timeline: list[TimelineEntry]


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    status: OrderStatus
    payment_status: PaymentStatus
    total_amount: Decimal
    currency_code: str
    shipping_address: str
    shipping_city: str
    shipping_state: str
    carrier: str | None
    tracking_number: str | None
    channel_id: int | None
    order_date: datetime
    confirmed_at: datetime | None
    picked_at: datetime | None
    packed_at: datetime | None
    shipped_at: datetime | None
    delivered_at: datetime | None


class OrderDetail(OrderOut):
    progress: Progress
    integrity_error: str | None = None
