from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from opsdesk.services.stock import StockLevel


class InventoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    sku: str | None = Field(default=None, max_length=40)
    category: str = ""
    quantity: int = Field(default=0, ge=0)
    min_quantity: int | None = Field(default=None, ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)


class InventoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    category: str | None = None
    quantity: int | None = Field(default=None, ge=0)
    min_quantity: int | None = Field(default=None, ge=0)
    price: Decimal | None = Field(default=None, ge=0)


class InventoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sku: str | None
    name: str
    category: str
    quantity: int
    min_quantity: int | None
    price: Decimal
    created_at: datetime
    level: StockLevel
    threshold: int
