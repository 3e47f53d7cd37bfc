"""Driver router - FastAPI endpoints for drivers and driver moderation"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_actor, require_admin
from ...constants import ROLE_ADMIN, ROLE_DRIVER
from ...database import get_db
from ...errors import Forbidden, NotFound, ValidationError
from ...shared.validators import normalize_phone
from ..orders.lifecycle import Actor
from ..orders.router import get_order_service
from ..orders.schemas import DriverStatsResponse, OrderResponse
from ..orders.service import OrderService
from .schemas import DriverRegister, DriverResponse, DriverStatusUpdate, DriverSummaryResponse
from .service import DriverService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/drivers", tags=["Drivers"])


def get_driver_service(db: Session = Depends(get_db)) -> DriverService:
    """Dependency injection for DriverService"""
    return DriverService(db)


def _to_response(driver) -> DriverResponse:
    return DriverResponse(
        id=driver.id,
        fullName=driver.full_name,
        phone=driver.phone,
        serviceType=driver.service_type,
        carNumber=driver.car_number,
        status=driver.status,
        created_at=driver.created_at,
    )


def _require_self_or_admin(actor: Actor, driver_id: int) -> None:
    if actor.role == ROLE_DRIVER and actor.driver_id == driver_id:
        return
    if actor.role == ROLE_ADMIN:
        return
    raise Forbidden("You can only view your own orders")


@router.post("/register", response_model=DriverResponse, status_code=201)
def register_driver(
    data: DriverRegister, service: DriverService = Depends(get_driver_service)
):
    """Self-registration; the account stays pending until an admin activates it"""
    return _to_response(service.register(data))


@router.get("/by-phone/{phone}", response_model=DriverResponse)
def get_driver_by_phone(phone: str, service: DriverService = Depends(get_driver_service)):
    """Driver login lookup; the caller checks status for pending/blocked accounts"""
    try:
        normalized = normalize_phone(phone)
    except ValueError as e:
        raise NotFound("No driver registered with this phone number") from e
    return _to_response(service.get_driver_by_phone(normalized))


@router.get("", response_model=list[DriverSummaryResponse])
def list_drivers(
    status: Optional[str] = Query(None),
    _admin: Actor = Depends(require_admin),
    service: DriverService = Depends(get_driver_service),
):
    """All drivers with completed-order earnings (admin)"""
    summaries = []
    for driver in service.list_drivers(status):
        earnings = service.driver_earnings(driver.id)
        summaries.append(
            DriverSummaryResponse(
                **_to_response(driver).model_dump(),
                completedOrders=earnings["completed_orders"],
                gross=earnings["gross"],
                commission=earnings["commission"],
                net=earnings["net"],
            )
        )
    return summaries


@router.patch("/{driver_id}/status", response_model=DriverResponse)
def update_driver_status(
    driver_id: int,
    data: DriverStatusUpdate,
    _admin: Actor = Depends(require_admin),
    service: DriverService = Depends(get_driver_service),
):
    """Activate, block or unblock a driver (admin)"""
    return _to_response(service.update_status(driver_id, data.status))


@router.get("/{driver_id}/orders", response_model=list[OrderResponse])
def get_driver_orders(
    driver_id: int,
    status: Optional[str] = Query(None),
    actor: Actor = Depends(get_actor),
    drivers: DriverService = Depends(get_driver_service),
    orders: OrderService = Depends(get_order_service),
):
    """New orders plus the driver's own orders, optionally filtered by status"""
    _require_self_or_admin(actor, driver_id)
    drivers.get_driver(driver_id)
    return [
        OrderResponse.from_order(o, orders.policy.commission_rate)
        for o in orders.driver_feed(driver_id, status)
    ]


@router.get("/{driver_id}/calendar", response_model=list[OrderResponse])
def get_driver_calendar(
    driver_id: int,
    date: str = Query(...),
    actor: Actor = Depends(get_actor),
    drivers: DriverService = Depends(get_driver_service),
    orders: OrderService = Depends(get_order_service),
):
    """The driver's confirmed and in-progress orders on one day"""
    _require_self_or_admin(actor, driver_id)
    drivers.get_driver(driver_id)
    try:
        day = _parse_day(date)
    except ValueError as e:
        raise ValidationError("Date must be in YYYY-MM-DD format") from e
    return [
        OrderResponse.from_order(o, orders.policy.commission_rate)
        for o in orders.driver_calendar(driver_id, day)
    ]


@router.get("/{driver_id}/stats", response_model=DriverStatsResponse)
def get_driver_stats(
    driver_id: int,
    actor: Actor = Depends(get_actor),
    drivers: DriverService = Depends(get_driver_service),
    orders: OrderService = Depends(get_order_service),
):
    """New/active counts and earnings (total and today) with commission split"""
    _require_self_or_admin(actor, driver_id)
    drivers.get_driver(driver_id)
    return DriverStatsResponse(**orders.driver_stats(driver_id))


def _parse_day(value: str) -> date:
    return date.fromisoformat(value)
