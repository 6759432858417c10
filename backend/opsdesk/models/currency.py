from decimal import Decimal

from sqlalchemy import Boolean, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.core.db import Base


class Currency(Base):
    __tablename__ = "currencies"

    code: Mapped[str] = mapped_column(String(3), primary_key=True)
    name: Mapped[str] = mapped_column(String(60))
    symbol: Mapped[str] = mapped_column(String(8), default="")
    # units of this currency per one unit of the base currency
    exchange_rate: Mapped[Decimal] = mapped_column(Numeric(14, 6), default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
