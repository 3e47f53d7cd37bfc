"""Order domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...constants import COMPLETED, ORDER_STATUSES
from ...shared.validators import normalize_phone
from .earnings import split_commission


class BookingRequest(BaseModel):
    """
    Schema for a customer booking.

    Address, date and time are optional here so that missing values reach the
    booking coordinator and come back as a ValidationError with a clear reason.
    """

    serviceType: str
    quantity: Optional[int] = 1
    address: Optional[str] = None
    coordinates: Optional[list[float]] = None
    deliveryDate: Optional[str] = None
    deliveryTime: Optional[str] = None
    userName: Optional[str] = None
    userPhone: Optional[str] = None
    userId: Optional[int] = None

    @field_validator("userPhone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return normalize_phone(v)
        return v

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, v):
        if v is not None and len(v) != 2:
            raise ValueError("Coordinates must be [latitude, longitude]")
        return v


class TransitionRequest(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in ORDER_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(ORDER_STATUSES)}")
        return v


class OrderResponse(BaseModel):
    """Schema for order response"""

    id: int
    serviceType: str
    quantity: int
    address: str
    coordinates: Optional[list[float]] = None
    deliveryDate: date
    deliveryTime: str
    price: int
    status: str
    driverId: Optional[int] = None
    userName: Optional[str] = None
    userPhone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Reporting only, derived for completed orders
    commission: Optional[int] = None
    driverPayout: Optional[int] = None

    @classmethod
    def from_order(cls, order, commission_rate: float) -> "OrderResponse":
        commission = payout = None
        if order.status == COMPLETED:
            split = split_commission(order.price, commission_rate)
            commission, payout = split.commission, split.net
        return cls(
            id=order.id,
            serviceType=order.service_type,
            quantity=order.quantity,
            address=order.address,
            coordinates=order.coordinates,
            deliveryDate=order.delivery_date,
            deliveryTime=order.delivery_time,
            price=order.price,
            status=order.status,
            driverId=order.driver_id,
            userName=order.user_name,
            userPhone=order.user_phone,
            created_at=order.created_at,
            updated_at=order.updated_at,
            commission=commission,
            driverPayout=payout,
        )


class SlotsResponse(BaseModel):
    date: date
    slots: list[str]
    fully_booked: bool


class CancellableResponse(BaseModel):
    orderId: int
    cancellable: bool


class EarningsResponse(BaseModel):
    gross: int
    commission: int
    net: int


class DriverStatsResponse(BaseModel):
    new_orders: int
    active_orders: int
    completed_orders: int
    total: EarningsResponse
    today: EarningsResponse


class AdminStatsResponse(BaseModel):
    total_orders: int
    revenue: int
    commission: int
    active_drivers: int
