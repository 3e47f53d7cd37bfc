"""Order repository - Order Store operations over SQLAlchemy"""

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...constants import NON_TERMINAL_STATUSES
from ...errors import ConflictError
from ...models import Order
from ...shared.retry import store_errors
from .lifecycle import TransitionPlan

logger = logging.getLogger(__name__)


class OrderRepository:
    """Repository for order database operations"""

    @staticmethod
    def get_order(db: Session, order_id: int) -> Optional[Order]:
        with store_errors(db, "get_order"):
            return db.query(Order).filter(Order.id == order_id).first()

    @staticmethod
    def refresh_order(db: Session, order_id: int) -> Optional[Order]:
        """Re-read an order, discarding anything cached in the session"""
        with store_errors(db, "refresh_order"):
            db.expire_all()
            return db.query(Order).filter(Order.id == order_id).first()

    @staticmethod
    def query_orders(
        db: Session,
        delivery_date: Optional[date] = None,
        statuses: Optional[Iterable[str]] = None,
        driver_id: Optional[int] = None,
        include_unassigned: bool = False,
        user_phone: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Order]:
        """
        Filtered order list, newest first.

        With include_unassigned, orders without a driver are returned alongside
        the given driver's own orders.
        """
        with store_errors(db, "query_orders"):
            query = db.query(Order)

            if delivery_date is not None:
                query = query.filter(Order.delivery_date == delivery_date)
            if statuses:
                query = query.filter(Order.status.in_(list(statuses)))
            if driver_id is not None:
                if include_unassigned:
                    query = query.filter(or_(Order.driver_id == driver_id, Order.driver_id.is_(None)))
                else:
                    query = query.filter(Order.driver_id == driver_id)
            if user_phone:
                query = query.filter(Order.user_phone == user_phone)

            query = query.order_by(Order.created_at.desc(), Order.id.desc())
            if limit:
                query = query.limit(limit)
            return query.all()

    @staticmethod
    def active_orders_on(db: Session, delivery_date: date) -> list[Order]:
        """Non-terminal orders holding a slot on delivery_date"""
        with store_errors(db, "active_orders_on"):
            return (
                db.query(Order)
                .filter(
                    Order.delivery_date == delivery_date,
                    Order.status.in_(NON_TERMINAL_STATUSES),
                )
                .all()
            )

    @staticmethod
    def find_active_at(db: Session, delivery_date: date, delivery_time: str) -> Optional[Order]:
        with store_errors(db, "find_active_at"):
            return (
                db.query(Order)
                .filter(
                    Order.delivery_date == delivery_date,
                    Order.delivery_time == delivery_time,
                    Order.status.in_(NON_TERMINAL_STATUSES),
                )
                .first()
            )

    @staticmethod
    def insert_order(db: Session, **order_data) -> Order:
        """
        Insert a new order.

        Raises ConflictError when the active-slot unique index rejects the row.
        """
        order = Order(**order_data)
        with store_errors(db, "insert_order"):
            try:
                db.add(order)
                db.commit()
            except IntegrityError as e:
                db.rollback()
                logger.warning(
                    f"⚠️ Insert rejected for {order_data.get('delivery_date')} "
                    f"{order_data.get('delivery_time')}: {e.orig}"
                )
                raise ConflictError("An active order already holds this slot") from e
            db.refresh(order)
        return order

    @staticmethod
    def apply_transition(db: Session, plan: TransitionPlan) -> int:
        """
        Conditional update: status and driver_id change together, and only while
        the stored row still matches the plan's preconditions.

        Returns the number of rows updated (0 or 1).
        """
        stmt = update(Order).where(Order.id == plan.order_id, Order.status == plan.from_status)
        if plan.require_unassigned:
            stmt = stmt.where(Order.driver_id.is_(None))
        if plan.require_driver_id is not None:
            stmt = stmt.where(Order.driver_id == plan.require_driver_id)
        stmt = stmt.values(**plan.changes).execution_options(synchronize_session=False)

        with store_errors(db, "apply_transition"):
            try:
                result = db.execute(stmt)
                db.commit()
            except Exception:
                db.rollback()
                raise
        return result.rowcount
