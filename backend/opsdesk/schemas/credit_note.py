from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from opsdesk.models.enums import CreditNoteStatus
from opsdesk.schemas.invoice import InvoiceOut


class CreditNoteCreate(BaseModel):
    customer_id: int
    invoice_id: int | None = None
    credit_note_number: str | None = Field(default=None, max_length=40)
    issue_date: date | None = None
    reason: str = ""
    currency_code: str | None = Field(default=None, min_length=3, max_length=3)
    amount: Decimal = Field(gt=0)


class CreditApply(BaseModel):
    invoice_id: int
    amount: Decimal | None = Field(default=None, gt=0)


class CreditNoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    credit_note_number: str
    customer_id: int
    invoice_id: int | None
    issue_date: date
    reason: str
    currency_code: str
    amount: Decimal
    applied_amount: Decimal
    balance: Decimal
    status: CreditNoteStatus
    created_at: datetime


class CreditApplied(BaseModel):
    credit_note: CreditNoteOut
    invoice: InvoiceOut
