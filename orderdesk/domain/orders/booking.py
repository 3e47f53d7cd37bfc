"""
Booking coordinator - slot check plus order creation as one operation.

The slot pre-check uses the (possibly cached) slot list and is only a fast
path. The store is the authority: the slot is re-checked immediately before
insertion, and the active-slot unique index turns any remaining race into a
SlotTaken at insert time.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import Cache
from ...constants import PENDING, SERVICE_TYPES
from ...errors import ConflictError, SlotTaken, ValidationError
from ...events import OrderEvents
from ...models import Order
from ...shared.retry import call_with_retry
from ..scheduling.availability_service import AvailabilityService
from ..scheduling.slots import SlotGrid, normalize_time, parse_date
from .pricing import RateTable, compute_price, normalize_quantity
from .repository import OrderRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerInfo:
    """Customer identity as captured at booking time"""

    name: Optional[str] = None
    phone: Optional[str] = None
    user_id: Optional[int] = None


class BookingCoordinator:
    def __init__(
        self,
        db: Session,
        clock,
        cache: Cache,
        events: OrderEvents,
        grid: Optional[SlotGrid] = None,
        rates: Optional[RateTable] = None,
    ):
        self.db = db
        self.clock = clock
        self.events = events
        self.grid = grid or SlotGrid.from_config()
        self.rates = rates or RateTable.from_config()
        self.availability = AvailabilityService(db, cache, self.grid)
        self.repo = OrderRepository()

    def _validate(self, delivery_date, delivery_time, service_type, quantity, address):
        if not address or not str(address).strip():
            raise ValidationError("Please provide a delivery address")
        if not delivery_date or not delivery_time:
            raise ValidationError("Please choose a delivery date and time")
        if service_type not in SERVICE_TYPES:
            raise ValidationError(f"Unknown service type: {service_type}")

        try:
            target_date = parse_date(delivery_date)
            target_time = normalize_time(delivery_time)
        except ValueError:
            raise ValidationError("Invalid delivery date or time format")

        if not self.grid.contains(target_time):
            raise ValidationError(f"{target_time} is not a bookable delivery time")

        earliest = self.clock.now().date() + timedelta(days=1)
        if target_date < earliest:
            raise ValidationError(f"Delivery can be booked from {earliest.isoformat()} onwards")

        return target_date, target_time, normalize_quantity(service_type, quantity, self.rates)

    def _slot_taken(self, target_date, target_time) -> SlotTaken:
        self.availability.invalidate(target_date)
        fresh = self.availability.get_available_slots(target_date, use_cache=False)
        return SlotTaken(
            f"{target_time} on {target_date.isoformat()} is already booked, please pick another time",
            {"available_slots": list(fresh.slots), "fully_booked": fresh.fully_booked},
        )

    def submit_booking(
        self,
        delivery_date,
        delivery_time,
        service_type: str,
        quantity,
        customer: CustomerInfo,
        address: str,
        coordinates: Optional[list] = None,
    ) -> Order:
        """
        Create a pending order for a free slot.

        Raises ValidationError before touching the store, SlotTaken when the
        slot is (or just became) occupied.
        """
        target_date, target_time, quantity = self._validate(
            delivery_date, delivery_time, service_type, quantity, address
        )

        # Fast path against the possibly stale slot list
        availability = self.availability.get_available_slots(target_date)
        if target_time not in availability:
            logger.warning(f"⚠️ Slot {target_date} {target_time} rejected by pre-check")
            raise self._slot_taken(target_date, target_time)

        # Authoritative re-check right before writing
        holder = call_with_retry(lambda: self.repo.find_active_at(self.db, target_date, target_time))
        if holder is not None:
            logger.warning(f"⚠️ Slot {target_date} {target_time} already held by order #{holder.id}")
            raise self._slot_taken(target_date, target_time)

        now = self.clock.now()
        try:
            order = self.repo.insert_order(
                self.db,
                service_type=service_type,
                quantity=quantity,
                address=str(address).strip(),
                coordinates=coordinates,
                delivery_date=target_date,
                delivery_time=target_time,
                price=compute_price(service_type, quantity, self.rates),
                status=PENDING,
                driver_id=None,
                user_id=customer.user_id,
                user_name=customer.name,
                user_phone=customer.phone,
                created_at=now,
                updated_at=now,
            )
        except ConflictError:
            logger.warning(f"⚠️ Slot {target_date} {target_time} lost to a concurrent booking")
            raise self._slot_taken(target_date, target_time)

        self.availability.invalidate(target_date)
        self.events.publish("insert", order_to_record(order))
        logger.info(
            f"✅ Order #{order.id} booked: {service_type} x{quantity} on {target_date} at {target_time}"
        )
        return order


def order_to_record(order: Order) -> dict:
    """Plain-JSON snapshot of an order for change notifications"""
    return {
        "id": order.id,
        "service_type": order.service_type,
        "quantity": order.quantity,
        "address": order.address,
        "coordinates": order.coordinates,
        "delivery_date": order.delivery_date.isoformat() if order.delivery_date else None,
        "delivery_time": order.delivery_time,
        "price": order.price,
        "status": order.status,
        "driver_id": order.driver_id,
        "user_id": order.user_id,
        "user_name": order.user_name,
        "user_phone": order.user_phone,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
    }
