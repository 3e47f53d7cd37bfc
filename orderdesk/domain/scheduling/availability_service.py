"""Slot availability backed by the order store"""

import logging
from datetime import date
from typing import Optional, Union

from sqlalchemy.orm import Session

from ...cache import Cache, get_slots_cached, invalidate_slots_cache, set_slots_cached
from ...shared.retry import call_with_retry
from ..orders.repository import OrderRepository
from .slots import (
    AVAILABLE,
    FULLY_BOOKED,
    SlotAvailability,
    SlotGrid,
    available_slots,
    parse_date,
)

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Free delivery slots for a date, cached briefly per date"""

    def __init__(self, db: Session, cache: Cache, grid: Optional[SlotGrid] = None):
        self.db = db
        self.cache = cache
        self.grid = grid or SlotGrid.from_config()
        self.repo = OrderRepository()

    def get_available_slots(
        self, delivery_date: Optional[Union[str, date]], use_cache: bool = True
    ) -> SlotAvailability:
        if not delivery_date:
            return available_slots(None, [], self.grid)

        target = parse_date(delivery_date)
        if use_cache:
            cached = get_slots_cached(self.cache, target)
            if cached is not None:
                return SlotAvailability(
                    delivery_date=target,
                    slots=tuple(cached),
                    outcome=AVAILABLE if cached else FULLY_BOOKED,
                )

        orders = call_with_retry(lambda: self.repo.active_orders_on(self.db, target))
        availability = available_slots(target, orders, self.grid)
        set_slots_cached(self.cache, target, list(availability.slots))
        logger.debug(f"🗓️ {target}: {len(availability.slots)} free slots")
        return availability

    def invalidate(self, delivery_date: Union[str, date]) -> None:
        invalidate_slots_cache(self.cache, parse_date(delivery_date))
