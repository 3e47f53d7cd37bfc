"""Order service - lifecycle transitions and read models for the role views"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import Cache, invalidate_slots_cache
from ...constants import CONFIRMED, IN_PROGRESS, NON_TERMINAL_STATUSES, ROLE_CUSTOMER, ROLE_DRIVER
from ...errors import ConflictError, Forbidden, NotFound, OrderDeskError
from ...events import OrderEvents
from ...models import Order
from ...shared.retry import call_with_retry
from ..drivers.repository import DriverRepository
from .booking import order_to_record
from .earnings import admin_stats, driver_stats
from .lifecycle import Actor, LifecyclePolicy, TransitionPlan, can_cancel, plan_transition
from .repository import OrderRepository

logger = logging.getLogger(__name__)


class OrderService:
    """Service layer for order business logic"""

    def __init__(
        self,
        db: Session,
        clock,
        cache: Cache,
        events: OrderEvents,
        policy: Optional[LifecyclePolicy] = None,
    ):
        self.db = db
        self.clock = clock
        self.cache = cache
        self.events = events
        self.policy = policy or LifecyclePolicy.from_config()
        self.repo = OrderRepository()
        self.drivers = DriverRepository()

    def get_order(self, order_id: int) -> Order:
        order = call_with_retry(lambda: self.repo.get_order(self.db, order_id))
        if not order:
            raise NotFound(f"Order #{order_id} not found")
        return order

    def _acting_driver(self, actor: Actor):
        if actor.role != ROLE_DRIVER or actor.driver_id is None:
            return None
        return call_with_retry(lambda: self.drivers.get_by_id(self.db, actor.driver_id))

    @staticmethod
    def _write_landed(plan: TransitionPlan, fresh: Order) -> bool:
        """True when the stored row already shows exactly what plan wrote"""
        if fresh.status != plan.to_status:
            return False
        if "driver_id" in plan.changes and fresh.driver_id != plan.changes["driver_id"]:
            return False
        return fresh.updated_at == plan.changes.get("updated_at")

    def transition(self, order_id: int, target_status: str, actor: Actor) -> Order:
        """
        Move an order to target_status on behalf of actor.

        The engine validates against the current snapshot, then the write is
        applied conditionally. If another client changed the order in between,
        the fresh row is re-validated so the caller gets the precise rejection
        (NotAssigned, InvalidTransition, ...) instead of a silent success.
        """
        order = self.get_order(order_id)
        driver = self._acting_driver(actor)
        now = self.clock.now()

        try:
            plan = plan_transition(order, target_status, actor, now, driver, self.policy)
        except OrderDeskError as e:
            logger.warning(f"⚠️ Order #{order_id} {order.status} → {target_status} rejected: {e.message}")
            raise

        updated = call_with_retry(lambda: self.repo.apply_transition(self.db, plan))
        fresh = call_with_retry(lambda: self.repo.refresh_order(self.db, order_id))

        if not updated and not (fresh and self._write_landed(plan, fresh)):
            if fresh is None:
                raise NotFound(f"Order #{order_id} not found")
            logger.warning(
                f"⚠️ Order #{order_id} changed concurrently (now {fresh.status}, driver {fresh.driver_id})"
            )
            # Raises the rejection that applies to the current state
            plan_transition(fresh, target_status, actor, now, driver, self.policy)
            raise ConflictError(f"Order #{order_id} was changed by someone else, please refresh")

        invalidate_slots_cache(self.cache, fresh.delivery_date)
        self.events.publish("update", order_to_record(fresh))
        logger.info(f"✅ Order #{order_id} transitioned: {plan.from_status} → {plan.to_status}")
        return fresh

    def is_cancellable(self, order_id: int, actor: Actor) -> bool:
        order = self.get_order(order_id)
        if actor.role == ROLE_CUSTOMER and order.user_phone and actor.id != order.user_phone:
            raise Forbidden("You can only view your own orders")
        return can_cancel(order, self.clock.now(), self.policy)

    # Customer views

    def customer_history(self, phone: str) -> list[Order]:
        return call_with_retry(lambda: self.repo.query_orders(self.db, user_phone=phone))

    def current_order(self, phone: str) -> Optional[Order]:
        """Most recent order still in progress for this customer"""
        orders = call_with_retry(
            lambda: self.repo.query_orders(
                self.db, user_phone=phone, statuses=NON_TERMINAL_STATUSES, limit=1
            )
        )
        return orders[0] if orders else None

    # Driver views

    def driver_feed(self, driver_id: int, status: Optional[str] = None) -> list[Order]:
        """Unassigned orders plus the driver's own, newest first"""
        statuses = [status] if status and status != "all" else None
        return call_with_retry(
            lambda: self.repo.query_orders(
                self.db, driver_id=driver_id, include_unassigned=True, statuses=statuses
            )
        )

    def driver_calendar(self, driver_id: int, delivery_date: date) -> list[Order]:
        orders = call_with_retry(
            lambda: self.repo.query_orders(
                self.db,
                driver_id=driver_id,
                delivery_date=delivery_date,
                statuses=(CONFIRMED, IN_PROGRESS),
            )
        )
        return sorted(orders, key=lambda o: o.delivery_time)

    def driver_stats(self, driver_id: int) -> dict:
        orders = self.driver_feed(driver_id)
        return driver_stats(orders, driver_id, self.clock.now().date(), self.policy.commission_rate)

    # Admin views

    def admin_stats(self) -> dict:
        orders = call_with_retry(lambda: self.repo.query_orders(self.db))
        drivers = call_with_retry(lambda: self.drivers.list_drivers(self.db))
        return admin_stats(orders, drivers, self.policy.commission_rate)

    def recent_orders(self, limit: int = 10) -> list[Order]:
        return call_with_retry(lambda: self.repo.query_orders(self.db, limit=limit))
