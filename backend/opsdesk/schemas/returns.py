from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from opsdesk.models.enums import Carrier, PickupSlot, ReturnStatus, ReturnType
from opsdesk.schemas.order import Progress


class ReturnCreate(BaseModel):
    order_id: int
    return_type: ReturnType = ReturnType.REFUND
    reason: str = Field(min_length=1)
    refund_amount: Decimal | None = Field(default=None, ge=0)
    pickup_address: str = ""


class ReturnAdvance(BaseModel):
    status: ReturnStatus


class PickupCreate(BaseModel):
    carrier: Carrier = Carrier.FEDEX
    pickup_date: date
    pickup_time_slot: PickupSlot = PickupSlot.MORNING
    pickup_address: str = ""
    contact_name: str = Field(min_length=1, max_length=120)
    contact_phone: str = Field(min_length=1, max_length=40)
    pickup_instructions: str = ""


class PickupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    return_id: int
    carrier: Carrier
    pickup_date: date
    pickup_time_slot: PickupSlot
    pickup_address: str
    contact_name: str
    contact_phone: str
    pickup_instructions: str
    created_at: datetime


class ReturnOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    return_number: str
    order_id: int
    customer_name: str
    customer_email: str
    return_type: ReturnType
    status: ReturnStatus
    reason: str
    refund_amount: Decimal
    pickup_address: str
    carrier: str | None
    tracking_number: str | None
    created_at: datetime
    approved_at: datetime | None
    pickup_scheduled_at: datetime | None
    picked_up_at: datetime | None
    received_at: datetime | None
    inspected_at: datetime | None
    refunded_at: datetime | None
    completed_at: datetime | None


class ReturnDetail(ReturnOut):
    progress: Progress
    pickup: PickupOut | None = None
    integrity_error: str | None = None
