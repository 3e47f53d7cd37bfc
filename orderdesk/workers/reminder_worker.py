"""
Driver Reminder Background Worker
Announces upcoming deliveries 60 and 30 minutes ahead for one driver session
"""

import asyncio
import logging
from typing import Callable, Optional

from ..clock import SystemClock
from ..config import REMINDER_CHECK_INTERVAL_SECONDS
from ..database import SessionLocal
from ..domain.orders.reminders import Reminder, ReminderTracker, due_reminders
from ..domain.orders.repository import OrderRepository
from ..shared.retry import call_with_retry
from ..watcher import OrderWatcher

logger = logging.getLogger(__name__)


def log_reminder(reminder: Reminder) -> None:
    logger.info(f"🔔 {reminder.message} ({reminder.delivery_at:%Y-%m-%d %H:%M})")


def load_driver_orders(driver_id: int) -> list:
    """Orders for the driver's feed, read in a short-lived session"""
    db = SessionLocal()
    try:
        return call_with_retry(
            lambda: OrderRepository.query_orders(db, driver_id=driver_id, include_unassigned=True)
        )
    finally:
        db.close()


def check_reminders(
    orders: list,
    driver_id: int,
    tracker: ReminderTracker,
    clock,
    notify: Callable[[Reminder], None] = log_reminder,
) -> list[Reminder]:
    reminders = due_reminders(orders, clock.now(), tracker, driver_id=driver_id)
    for reminder in reminders:
        try:
            notify(reminder)
        except Exception as e:
            logger.error(f"❌ Error delivering reminder for order #{reminder.order_id}: {e}")
    return reminders


async def run_reminder_worker(
    driver_id: int,
    clock=None,
    notify: Callable[[Reminder], None] = log_reminder,
    interval: float = REMINDER_CHECK_INTERVAL_SECONDS,
    watcher: Optional[OrderWatcher] = None,
):
    """
    Keep the driver's orders fresh and check reminders every interval.

    The tracker lives for this run only, so restarting the worker is a new
    session and reminders may be shown again.
    """
    clock = clock or SystemClock()
    tracker = ReminderTracker()
    watcher = watcher or OrderWatcher(
        lambda: load_driver_orders(driver_id),
        record_filter=lambda record: record.get("driver_id") in (None, driver_id),
    )

    logger.info(f"🚀 Reminder worker started for driver #{driver_id}")
    watcher.start()
    try:
        while True:
            check_reminders(watcher.orders, driver_id, tracker, clock, notify)
            await asyncio.sleep(interval)
    finally:
        await watcher.stop()
