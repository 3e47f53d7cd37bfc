"""Driver service - self-registration and admin moderation"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...config import COMMISSION_RATE
from ...constants import COMPLETED, DRIVER_ACTIVE, DRIVER_BLOCKED, DRIVER_PENDING
from ...errors import ConflictError, InvalidTransition, NotFound
from ...models import Driver
from ...shared.retry import call_with_retry
from ..orders.earnings import compute_earnings
from ..orders.repository import OrderRepository
from .repository import DriverRepository
from .schemas import DriverRegister

logger = logging.getLogger(__name__)

# Driver accounts are never deleted; blocking is reversible
VALID_DRIVER_TRANSITIONS = {
    DRIVER_PENDING: (DRIVER_ACTIVE,),
    DRIVER_ACTIVE: (DRIVER_BLOCKED,),
    DRIVER_BLOCKED: (DRIVER_ACTIVE,),
}


class DriverService:
    """Service layer for driver business logic"""

    def __init__(self, db: Session, commission_rate: float = COMMISSION_RATE):
        self.db = db
        self.commission_rate = commission_rate
        self.repo = DriverRepository()
        self.orders = OrderRepository()

    def get_driver(self, driver_id: int) -> Driver:
        driver = call_with_retry(lambda: self.repo.get_by_id(self.db, driver_id))
        if not driver:
            raise NotFound(f"Driver #{driver_id} not found")
        return driver

    def get_driver_by_phone(self, phone: str) -> Driver:
        driver = call_with_retry(lambda: self.repo.get_by_phone(self.db, phone))
        if not driver:
            raise NotFound("No driver registered with this phone number")
        return driver

    def register(self, data: DriverRegister) -> Driver:
        """Self-registration; new drivers wait for admin activation"""
        logger.info(f"📥 Driver registration for {data.fullName}")
        if call_with_retry(lambda: self.repo.get_by_phone(self.db, data.phone)):
            raise ConflictError("A driver with this phone number is already registered")

        driver = self.repo.create_driver(
            self.db,
            full_name=data.fullName,
            phone=data.phone,
            service_type=data.serviceType,
            car_number=data.carNumber,
            status=DRIVER_PENDING,
        )
        logger.info(f"✅ Driver #{driver.id} registered, awaiting activation")
        return driver

    def list_drivers(self, status: Optional[str] = None) -> list[Driver]:
        return call_with_retry(lambda: self.repo.list_drivers(self.db, status))

    def update_status(self, driver_id: int, new_status: str) -> Driver:
        """Admin moderation: pending → active, active ⇄ blocked"""
        driver = self.get_driver(driver_id)
        current = driver.status

        if new_status not in VALID_DRIVER_TRANSITIONS.get(current, ()):
            logger.warning(f"⚠️ Driver #{driver_id} {current} → {new_status} rejected")
            raise InvalidTransition(
                f"Driver status cannot change from {current} to {new_status}",
                {"current_status": current, "target_status": new_status},
            )

        updated = call_with_retry(
            lambda: self.repo.update_status(self.db, driver_id, current, new_status)
        )
        if not updated:
            raise ConflictError("Driver status was changed by someone else, please refresh")

        self.db.expire_all()
        logger.info(f"✅ Driver #{driver_id} transitioned: {current} → {new_status}")
        return self.get_driver(driver_id)

    def driver_earnings(self, driver_id: int) -> dict:
        """Completed order count and earnings split, as shown in the admin driver list"""
        completed = call_with_retry(
            lambda: self.orders.query_orders(self.db, driver_id=driver_id, statuses=(COMPLETED,))
        )
        return {
            "completed_orders": len(completed),
            **compute_earnings(completed, self.commission_rate).to_dict(),
        }
