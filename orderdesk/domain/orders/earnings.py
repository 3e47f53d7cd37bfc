"""
Commission and earnings derived from order collections.

Nothing here is stored on orders. The admin dashboard and the driver
earnings view both go through split_commission so they round identically:
commission = round-half-up(amount * rate), net = amount - commission.
"""

from dataclasses import asdict, dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from ...config import COMMISSION_RATE
from ...constants import COMPLETED, CONFIRMED, DRIVER_ACTIVE, IN_PROGRESS, PENDING
from ..scheduling.slots import parse_date


@dataclass(frozen=True)
class Earnings:
    gross: int
    commission: int
    net: int

    def to_dict(self) -> dict:
        return asdict(self)


def _field(item: Any, name: str):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def split_commission(amount: int, commission_rate: float = COMMISSION_RATE) -> Earnings:
    commission = int(
        (Decimal(amount) * Decimal(str(commission_rate))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )
    return Earnings(gross=amount, commission=commission, net=amount - commission)


def compute_earnings(orders: Iterable[Any], commission_rate: float = COMMISSION_RATE) -> Earnings:
    """Gross over completed orders, with the commission taken from the total"""
    gross = sum(_field(o, "price") or 0 for o in orders if _field(o, "status") == COMPLETED)
    return split_commission(gross, commission_rate)


def filter_orders(
    orders: Iterable[Any],
    driver_id: Optional[int] = None,
    delivery_date: Optional[date] = None,
    statuses: Optional[Iterable[str]] = None,
) -> list:
    statuses = tuple(statuses) if statuses else None
    selected = []
    for order in orders:
        if driver_id is not None and _field(order, "driver_id") != driver_id:
            continue
        if delivery_date is not None and parse_date(_field(order, "delivery_date")) != delivery_date:
            continue
        if statuses and _field(order, "status") not in statuses:
            continue
        selected.append(order)
    return selected


def count_new_orders(orders: Iterable[Any]) -> int:
    """Pending orders no driver has taken yet"""
    return sum(
        1 for o in orders if _field(o, "status") == PENDING and _field(o, "driver_id") is None
    )


def count_active_orders(orders: Iterable[Any], driver_id: int) -> int:
    return len(filter_orders(orders, driver_id=driver_id, statuses=(CONFIRMED, IN_PROGRESS)))


def driver_stats(
    orders: Iterable[Any],
    driver_id: int,
    today: date,
    commission_rate: float = COMMISSION_RATE,
) -> dict:
    orders = list(orders)
    completed = filter_orders(orders, driver_id=driver_id, statuses=(COMPLETED,))
    completed_today = filter_orders(completed, delivery_date=today)
    return {
        "new_orders": count_new_orders(orders),
        "active_orders": count_active_orders(orders, driver_id),
        "completed_orders": len(completed),
        "total": compute_earnings(completed, commission_rate).to_dict(),
        "today": compute_earnings(completed_today, commission_rate).to_dict(),
    }


def admin_stats(
    orders: Iterable[Any], drivers: Iterable[Any], commission_rate: float = COMMISSION_RATE
) -> dict:
    orders = list(orders)
    revenue = compute_earnings(orders, commission_rate)
    return {
        "total_orders": len(orders),
        "revenue": revenue.gross,
        "commission": revenue.commission,
        "active_drivers": sum(1 for d in drivers if _field(d, "status") == DRIVER_ACTIVE),
    }
