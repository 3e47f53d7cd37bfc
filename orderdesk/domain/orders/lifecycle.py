"""
Order lifecycle engine

Order statuses: pending → confirmed → in_progress → completed
                pending | confirmed → cancelled

The engine is pure: it inspects an order snapshot and the acting party and
returns a TransitionPlan describing the conditional write to perform. It never
touches the store, so the caller applies status and driver_id together (or
not at all) and lets the store decide races.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ...config import COMMISSION_RATE, CUSTOMER_CANCEL_WINDOW_HOURS
from ...constants import (
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    DRIVER_ACTIVE,
    IN_PROGRESS,
    ORDER_STATUSES,
    PENDING,
    ROLE_CUSTOMER,
    ROLE_DRIVER,
    ROLES,
)
from ...errors import Forbidden, InvalidTransition, NotAssigned
from ..scheduling.slots import parse_date, parse_time

# The five legal edges
VALID_TRANSITIONS = {
    PENDING: (CONFIRMED, CANCELLED),
    CONFIRMED: (IN_PROGRESS, CANCELLED),
    IN_PROGRESS: (COMPLETED,),
    COMPLETED: (),  # Terminal state
    CANCELLED: (),  # Terminal state
}

CANCELLABLE_STATUSES = (PENDING, CONFIRMED)


@dataclass(frozen=True)
class LifecyclePolicy:
    commission_rate: float = 0.10
    customer_cancel_window_hours: float = 3

    @classmethod
    def from_config(cls) -> "LifecyclePolicy":
        return cls(
            commission_rate=COMMISSION_RATE,
            customer_cancel_window_hours=CUSTOMER_CANCEL_WINDOW_HOURS,
        )


@dataclass(frozen=True)
class Actor:
    """Who is asking: a driver (id = driver id), a customer (id = phone) or an admin"""

    role: str
    id: Optional[str] = None

    def __post_init__(self):
        if self.role not in ROLES:
            raise Forbidden(f"Unknown role: {self.role}")

    @property
    def driver_id(self) -> Optional[int]:
        if self.role != ROLE_DRIVER or self.id is None:
            return None
        try:
            return int(self.id)
        except (TypeError, ValueError):
            return None


@dataclass(frozen=True)
class TransitionPlan:
    """
    Conditional update for a single order.

    The write must only apply while the stored row still has expected_status
    and, when set, the driver_id condition below. Zero affected rows means a
    concurrent writer got there first.
    """

    order_id: int
    from_status: str
    to_status: str
    changes: dict = field(default_factory=dict)
    require_unassigned: bool = False
    require_driver_id: Optional[int] = None


def _field(order: Any, name: str):
    if isinstance(order, dict):
        return order.get(name)
    return getattr(order, name, None)


def delivery_datetime(order: Any) -> datetime:
    return datetime.combine(
        parse_date(_field(order, "delivery_date")), parse_time(_field(order, "delivery_time"))
    )


def hours_until(order: Any, now: datetime) -> float:
    return (delivery_datetime(order) - now).total_seconds() / 3600


def can_cancel(order: Any, now: datetime, policy: Optional[LifecyclePolicy] = None) -> bool:
    """Customer-side cancellation: only pending/confirmed and far enough ahead"""
    policy = policy or LifecyclePolicy.from_config()
    if _field(order, "status") not in CANCELLABLE_STATUSES:
        return False
    return hours_until(order, now) >= policy.customer_cancel_window_hours


def is_valid_transition(current_status: str, new_status: str) -> bool:
    return new_status in VALID_TRANSITIONS.get(current_status, ())


def _require_edge(order_id, current: str, target: str) -> None:
    if not is_valid_transition(current, target):
        raise InvalidTransition(
            f"Order #{order_id} cannot move from {current} to {target}",
            {"current_status": current, "target_status": target},
        )


def _require_assigned_driver(order: Any, actor: Actor) -> int:
    if actor.role != ROLE_DRIVER:
        raise Forbidden("Only the assigned driver can do this")
    assigned = _field(order, "driver_id")
    if actor.driver_id is None or assigned != actor.driver_id:
        raise NotAssigned(f"Order #{_field(order, 'id')} is not assigned to you")
    return actor.driver_id


def plan_transition(
    order: Any,
    target_status: str,
    actor: Actor,
    now: datetime,
    driver: Any = None,
    policy: Optional[LifecyclePolicy] = None,
) -> TransitionPlan:
    """
    Validate a transition and describe the write that performs it.

    driver is the acting driver's record (needed for acceptance, where the
    driver's own status must be active).

    Raises InvalidTransition, NotAssigned or Forbidden; nothing is modified.
    """
    policy = policy or LifecyclePolicy.from_config()
    order_id = _field(order, "id")
    current = _field(order, "status")

    if target_status not in ORDER_STATUSES:
        raise InvalidTransition(f"Unknown status: {target_status}")

    changes = {"status": target_status, "updated_at": now}

    if target_status == CONFIRMED:
        if actor.role != ROLE_DRIVER:
            raise Forbidden("Only drivers can accept orders")
        # Single assignment: a taken order can never be accepted again
        if _field(order, "driver_id") is not None:
            raise NotAssigned(
                f"Order #{order_id} has already been accepted",
                {"driver_id": _field(order, "driver_id")},
            )
        _require_edge(order_id, current, target_status)
        if driver is None or actor.driver_id is None or _field(driver, "id") != actor.driver_id:
            raise Forbidden("Driver account not found")
        if _field(driver, "status") != DRIVER_ACTIVE:
            raise Forbidden("Your driver account is not active")
        changes["driver_id"] = actor.driver_id
        return TransitionPlan(
            order_id, current, target_status, changes, require_unassigned=True
        )

    _require_edge(order_id, current, target_status)

    if target_status in (IN_PROGRESS, COMPLETED):
        driver_id = _require_assigned_driver(order, actor)
        return TransitionPlan(
            order_id, current, target_status, changes, require_driver_id=driver_id
        )

    # Cancellation
    if actor.role == ROLE_CUSTOMER:
        owner_phone = _field(order, "user_phone")
        if owner_phone and actor.id != owner_phone:
            raise Forbidden("You can only cancel your own orders")
        if not can_cancel(order, now, policy):
            raise Forbidden(
                f"Orders can only be cancelled at least "
                f"{policy.customer_cancel_window_hours:g} hours before delivery"
            )
        return TransitionPlan(order_id, current, target_status, changes)

    if actor.role == ROLE_DRIVER and _field(order, "driver_id") is not None:
        driver_id = _require_assigned_driver(order, actor)
        return TransitionPlan(
            order_id, current, target_status, changes, require_driver_id=driver_id
        )

    if actor.role == ROLE_DRIVER:
        # Declining a pending order nobody has taken yet
        if actor.driver_id is None:
            raise Forbidden("Driver account not found")
        return TransitionPlan(
            order_id, current, target_status, changes, require_unassigned=True
        )

    # Admin: no time or assignment restriction
    return TransitionPlan(order_id, current, target_status, changes)
