"""Slot calculator - which delivery times are still bookable on a date"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Optional, Union

from ...config import SLOT_GRID_END, SLOT_GRID_START, SLOT_GRID_STEP_MINUTES
from ...constants import NON_TERMINAL_STATUSES

NO_DATE = "no_date"
FULLY_BOOKED = "fully_booked"
AVAILABLE = "available"


def parse_time(value: Union[str, time]) -> time:
    """Parse HH:MM or HH:MM:SS (or pass a time through) at minute precision"""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    parts = str(value).strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time: {value!r}")
    return time(int(parts[0]), int(parts[1]))


def format_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def normalize_time(value: Union[str, time]) -> str:
    """Truncate any stored time representation to HH:MM"""
    return format_time(parse_time(value))


def parse_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


@dataclass(frozen=True)
class SlotGrid:
    """Fixed bookable times of day; end is inclusive"""

    start: time = time(8, 0)
    end: time = time(20, 0)
    step_minutes: int = 30

    def __post_init__(self):
        if self.step_minutes <= 0:
            raise ValueError("step_minutes must be positive")
        if self.end < self.start:
            raise ValueError("grid end must not precede grid start")

    @classmethod
    def from_config(cls) -> "SlotGrid":
        return cls(
            start=parse_time(SLOT_GRID_START),
            end=parse_time(SLOT_GRID_END),
            step_minutes=SLOT_GRID_STEP_MINUTES,
        )

    def candidates(self) -> tuple:
        anchor = datetime.combine(date.min, self.start)
        last = datetime.combine(date.min, self.end)
        step = timedelta(minutes=self.step_minutes)

        slots = []
        current = anchor
        while current <= last:
            slots.append(format_time(current.time()))
            current += step
        return tuple(slots)

    def contains(self, value: Union[str, time]) -> bool:
        try:
            return normalize_time(value) in self.candidates()
        except ValueError:
            return False


@dataclass(frozen=True)
class SlotAvailability:
    """
    Result of a slot lookup.

    outcome is NO_DATE when no date was given, FULLY_BOOKED when the date has
    no free slot left, and AVAILABLE otherwise.
    """

    delivery_date: Optional[date]
    slots: tuple
    outcome: str

    @property
    def fully_booked(self) -> bool:
        return self.outcome == FULLY_BOOKED

    def __contains__(self, value) -> bool:
        try:
            return normalize_time(value) in self.slots
        except ValueError:
            return False


def _field(order: Any, name: str):
    if isinstance(order, dict):
        return order.get(name)
    return getattr(order, name, None)


def occupied_slots(delivery_date: date, orders: Iterable[Any]) -> frozenset:
    """Times held by non-terminal orders on delivery_date"""
    taken = set()
    for order in orders:
        if _field(order, "status") not in NON_TERMINAL_STATUSES:
            continue
        order_date = _field(order, "delivery_date")
        if order_date is None or parse_date(order_date) != delivery_date:
            continue
        taken.add(normalize_time(_field(order, "delivery_time")))
    return frozenset(taken)


def available_slots(
    delivery_date: Optional[Union[str, date]],
    orders: Iterable[Any],
    grid: Optional[SlotGrid] = None,
) -> SlotAvailability:
    """
    Grid candidates minus times occupied on delivery_date, ascending.

    orders may be ORM rows or dicts with delivery_date, delivery_time and
    status; orders on other dates are ignored.
    """
    grid = grid or SlotGrid.from_config()
    if not delivery_date:
        return SlotAvailability(delivery_date=None, slots=(), outcome=NO_DATE)

    target = parse_date(delivery_date)
    taken = occupied_slots(target, orders)
    free = tuple(slot for slot in grid.candidates() if slot not in taken)
    return SlotAvailability(
        delivery_date=target, slots=free, outcome=AVAILABLE if free else FULLY_BOOKED
    )
