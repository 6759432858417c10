import enum
from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from opsdesk.core.config import settings


class StockLevel(str, enum.Enum):
    OUT = "out"
    LOW = "low"
    HEALTHY = "healthy"


def threshold(min_quantity: int | None, default: int | None = None) -> int:
    if min_quantity is not None:
        return min_quantity
    return settings.DEFAULT_MIN_QUANTITY if default is None else default


def classify(quantity: int, min_quantity: int | None = None, default: int | None = None) -> StockLevel:
    if quantity <= 0:
        return StockLevel.OUT
    if quantity <= threshold(min_quantity, default):
        return StockLevel.LOW
    return StockLevel.HEALTHY


def slack(item, default: int | None = None) -> int:
    return item.quantity - threshold(item.min_quantity, default)


def low_stock(items: Iterable[Any], default: int | None = None) -> list[Any]:
    """Items at or below threshold, most urgent (most negative slack) first."""
    low = [i for i in items if classify(i.quantity, i.min_quantity, default) is not StockLevel.HEALTHY]
    return sorted(low, key=lambda i: (slack(i, default), i.name or ""))


def stock_summary(items: Iterable[Any], default: int | None = None) -> dict[str, Any]:
    counts = {level.value: 0 for level in StockLevel}
    value = Decimal("0")
    total = 0
    for item in items:
        counts[classify(item.quantity, item.min_quantity, default).value] += 1
        value += Decimal(str(item.price or 0)) * item.quantity
        total += 1
    return {"total_items": total, **counts, "inventory_value": float(value)}
