from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CurrencyCreate(BaseModel):
    code: str = Field(min_length=3, max_length=3)
    name: str = Field(min_length=1, max_length=60)
    symbol: str = Field(default="", max_length=8)
    exchange_rate: Decimal = Field(default=Decimal("1"), gt=0)
    is_active: bool = True


class CurrencyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=60)
    symbol: str | None = Field(default=None, max_length=8)
    exchange_rate: Decimal | None = Field(default=None, gt=0)
    is_active: bool | None = None


class CurrencyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    symbol: str
    exchange_rate: Decimal
    is_active: bool
