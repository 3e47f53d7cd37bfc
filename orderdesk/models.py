from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .constants import DRIVER_PENDING, NON_TERMINAL_STATUSES, PENDING
from .database import Base

# Only non-terminal orders hold a slot; completed/cancelled ones free it again
ACTIVE_SLOT_PREDICATE = "status IN ({})".format(
    ", ".join(f"'{status}'" for status in NON_TERMINAL_STATUSES)
)


class Driver(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(50), unique=True, index=True, nullable=False)
    service_type = Column(String(20), nullable=False)  # water, septic, both
    car_number = Column(String(50), nullable=False)
    # pending → active ⇄ blocked, changed by admins only
    status = Column(String(20), default=DRIVER_PENDING, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    orders = relationship("Order", back_populates="driver")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    service_type = Column(String(20), nullable=False)  # water, septic
    quantity = Column(Integer, nullable=False, default=1)  # cubic metres for water, 1 for septic
    address = Column(Text, nullable=False)
    coordinates = Column(JSON, nullable=True)  # [lat, lon]

    # Requested slot
    delivery_date = Column(Date, nullable=False, index=True)
    delivery_time = Column(String(5), nullable=False)  # HH:MM

    price = Column(Integer, nullable=False)
    status = Column(String(20), default=PENDING, nullable=False, index=True)
    # Set exactly once, when a driver accepts the order
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True, index=True)

    # Customer snapshot taken at booking time
    user_id = Column(Integer, nullable=True)
    user_name = Column(String(255), nullable=True)
    user_phone = Column(String(50), nullable=True, index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())

    driver = relationship("Driver", back_populates="orders")

    __table_args__ = (
        Index(
            "uq_orders_active_slot",
            "delivery_date",
            "delivery_time",
            unique=True,
            postgresql_where=text(ACTIVE_SLOT_PREDICATE),
            sqlite_where=text(ACTIVE_SLOT_PREDICATE),
        ),
    )
