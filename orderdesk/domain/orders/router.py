"""Order router - FastAPI endpoints for booking and order lifecycle"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_actor, require_admin
from ...cache import Cache, get_cache
from ...clock import get_clock
from ...database import get_db
from ...errors import NotFound
from ...events import OrderEvents, get_order_events
from ...shared.validators import normalize_phone
from .booking import BookingCoordinator, CustomerInfo
from .lifecycle import Actor
from .schemas import (
    AdminStatsResponse,
    BookingRequest,
    CancellableResponse,
    OrderResponse,
    TransitionRequest,
)
from .service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])
admin_router = APIRouter(prefix="/admin", tags=["Admin"])


def get_order_service(
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    cache: Cache = Depends(get_cache),
    events: OrderEvents = Depends(get_order_events),
) -> OrderService:
    """Dependency injection for OrderService"""
    return OrderService(db, clock, cache, events)


def get_booking_coordinator(
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    cache: Cache = Depends(get_cache),
    events: OrderEvents = Depends(get_order_events),
) -> BookingCoordinator:
    """Dependency injection for BookingCoordinator"""
    return BookingCoordinator(db, clock, cache, events)


def _phone_query(phone: str) -> str:
    try:
        return normalize_phone(phone)
    except ValueError as e:
        raise NotFound("No orders for this phone number") from e


# ============================================================================
# CUSTOMER
# ============================================================================


@router.post("", response_model=OrderResponse, status_code=201)
def create_order(
    data: BookingRequest,
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
    service: OrderService = Depends(get_order_service),
):
    """Book a delivery slot; the new order starts as pending"""
    order = coordinator.submit_booking(
        delivery_date=data.deliveryDate,
        delivery_time=data.deliveryTime,
        service_type=data.serviceType,
        quantity=data.quantity,
        customer=CustomerInfo(name=data.userName, phone=data.userPhone, user_id=data.userId),
        address=data.address,
        coordinates=data.coordinates,
    )
    return OrderResponse.from_order(order, service.policy.commission_rate)


@router.get("", response_model=list[OrderResponse])
def get_order_history(
    phone: str = Query(...),
    service: OrderService = Depends(get_order_service),
):
    """Customer order history, newest first"""
    orders = service.customer_history(_phone_query(phone))
    return [OrderResponse.from_order(o, service.policy.commission_rate) for o in orders]


@router.get("/current", response_model=Optional[OrderResponse])
def get_current_order(
    phone: str = Query(...),
    service: OrderService = Depends(get_order_service),
):
    """The customer's latest order that is not completed or cancelled"""
    order = service.current_order(_phone_query(phone))
    if order is None:
        return None
    return OrderResponse.from_order(order, service.policy.commission_rate)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, service: OrderService = Depends(get_order_service)):
    order = service.get_order(order_id)
    return OrderResponse.from_order(order, service.policy.commission_rate)


@router.get("/{order_id}/cancellable", response_model=CancellableResponse)
def get_cancellable(
    order_id: int,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    return CancellableResponse(orderId=order_id, cancellable=service.is_cancellable(order_id, actor))


# ============================================================================
# LIFECYCLE
# ============================================================================


@router.post("/{order_id}/transition", response_model=OrderResponse)
def transition_order(
    order_id: int,
    data: TransitionRequest,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    """Accept, start, complete or cancel an order"""
    order = service.transition(order_id, data.status, actor)
    return OrderResponse.from_order(order, service.policy.commission_rate)


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.get("/stats", response_model=AdminStatsResponse)
def get_admin_stats(
    _admin: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    return AdminStatsResponse(**service.admin_stats())


@admin_router.get("/orders/recent", response_model=list[OrderResponse])
def get_recent_orders(
    limit: int = Query(10, ge=1, le=100),
    _admin: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    orders = service.recent_orders(limit)
    return [OrderResponse.from_order(o, service.policy.commission_rate) for o in orders]
