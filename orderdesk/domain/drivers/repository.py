"""Driver repository - Driver Store operations"""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import ConflictError
from ...models import Driver
from ...shared.retry import store_errors


class DriverRepository:
    """Repository for driver database operations"""

    @staticmethod
    def get_by_id(db: Session, driver_id: int) -> Optional[Driver]:
        with store_errors(db, "get_driver"):
            return db.query(Driver).filter(Driver.id == driver_id).first()

    @staticmethod
    def get_by_phone(db: Session, phone: str) -> Optional[Driver]:
        with store_errors(db, "get_driver_by_phone"):
            return db.query(Driver).filter(Driver.phone == phone).first()

    @staticmethod
    def list_drivers(db: Session, status: Optional[str] = None) -> list[Driver]:
        with store_errors(db, "list_drivers"):
            query = db.query(Driver)
            if status and status != "all":
                query = query.filter(Driver.status == status)
            return query.order_by(Driver.created_at.desc(), Driver.id.desc()).all()

    @staticmethod
    def create_driver(db: Session, **driver_data) -> Driver:
        """Create a driver; raises ConflictError on a duplicate phone"""
        driver = Driver(**driver_data)
        with store_errors(db, "create_driver"):
            try:
                db.add(driver)
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise ConflictError("A driver with this phone number is already registered") from e
            db.refresh(driver)
        return driver

    @staticmethod
    def update_status(db: Session, driver_id: int, from_status: str, to_status: str) -> int:
        """Conditional status change; returns rows updated"""
        stmt = (
            update(Driver)
            .where(Driver.id == driver_id, Driver.status == from_status)
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        with store_errors(db, "update_driver_status"):
            result = db.execute(stmt)
            db.commit()
        return result.rowcount
