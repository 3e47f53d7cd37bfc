"""
Driver reminders for upcoming deliveries.

A 60-minute reminder fires when delivery is 30-60 minutes away, a 30-minute
reminder when it is 0-30 minutes away. The ReminderTracker remembers which
(order, kind) pairs were already announced for one session only; it is never
persisted or shared between clients.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from ...constants import CONFIRMED, IN_PROGRESS
from .lifecycle import delivery_datetime

logger = logging.getLogger(__name__)

REMINDER_60 = "60_minutes"
REMINDER_30 = "30_minutes"

REMINDER_MESSAGES = {
    REMINDER_60: "Order #{order_id} is due in 1 hour",
    REMINDER_30: "Order #{order_id} is due in 30 minutes!",
}


@dataclass(frozen=True)
class Reminder:
    order_id: int
    kind: str
    message: str
    delivery_at: datetime


class ReminderTracker:
    """Session-scoped set of reminders already shown"""

    def __init__(self):
        self._sent: set[tuple[int, str]] = set()

    def already_sent(self, order_id: int, kind: str) -> bool:
        return (order_id, kind) in self._sent

    def mark_sent(self, order_id: int, kind: str) -> None:
        self._sent.add((order_id, kind))

    def clear(self) -> None:
        self._sent.clear()

    def __len__(self) -> int:
        return len(self._sent)


def _field(order: Any, name: str):
    if isinstance(order, dict):
        return order.get(name)
    return getattr(order, name, None)


def reminder_kind(delivery_at: datetime, now: datetime) -> Optional[str]:
    if now < delivery_at <= now + timedelta(minutes=30):
        return REMINDER_30
    if now + timedelta(minutes=30) < delivery_at <= now + timedelta(minutes=60):
        return REMINDER_60
    return None


def due_reminders(
    orders: Iterable[Any],
    now: datetime,
    tracker: ReminderTracker,
    driver_id: Optional[int] = None,
) -> list[Reminder]:
    """
    Reminders to show now; each is recorded in tracker so it fires once.

    Only confirmed/in-progress orders (optionally for one driver) qualify.
    """
    reminders = []
    for order in orders:
        if _field(order, "status") not in (CONFIRMED, IN_PROGRESS):
            continue
        if driver_id is not None and _field(order, "driver_id") != driver_id:
            continue

        delivery_at = delivery_datetime(order)
        kind = reminder_kind(delivery_at, now)
        if kind is None:
            continue

        order_id = _field(order, "id")
        if tracker.already_sent(order_id, kind):
            continue

        tracker.mark_sent(order_id, kind)
        reminders.append(
            Reminder(
                order_id=order_id,
                kind=kind,
                message=REMINDER_MESSAGES[kind].format(order_id=order_id),
                delivery_at=delivery_at,
            )
        )
        logger.info(f"⏰ Reminder {kind} for order #{order_id}")
    return reminders
