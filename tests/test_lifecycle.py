from datetime import datetime

import pytest

from orderdesk.constants import ORDER_STATUSES
from orderdesk.domain.orders.lifecycle import (
    VALID_TRANSITIONS,
    Actor,
    LifecyclePolicy,
    can_cancel,
    is_valid_transition,
    plan_transition,
)
from orderdesk.errors import Forbidden, InvalidTransition, NotAssigned

NOW = datetime(2025, 6, 1, 10, 0)
POLICY = LifecyclePolicy(commission_rate=0.10, customer_cancel_window_hours=3)

DRIVER_A = {"id": 1, "status": "active"}
DRIVER_B = {"id": 2, "status": "active"}


def make_order(status="pending", driver_id=None, delivery_time="16:00", user_phone="+79140000001"):
    return {
        "id": 42,
        "status": status,
        "driver_id": driver_id,
        "delivery_date": "2025-06-01",
        "delivery_time": delivery_time,
        "user_phone": user_phone,
    }


def driver(driver_id):
    return Actor(role="driver", id=str(driver_id))


def test_transition_table_has_exactly_five_edges():
    edges = [(src, dst) for src, targets in VALID_TRANSITIONS.items() for dst in targets]
    assert sorted(edges) == sorted(
        [
            ("pending", "confirmed"),
            ("pending", "cancelled"),
            ("confirmed", "in_progress"),
            ("confirmed", "cancelled"),
            ("in_progress", "completed"),
        ]
    )


@pytest.mark.parametrize("current", ORDER_STATUSES)
@pytest.mark.parametrize("target", ORDER_STATUSES)
def test_admin_can_only_follow_legal_edges(current, target):
    # Admins may cancel without restriction, so every non-accept edge is reachable
    order = make_order(status=current, driver_id=1 if current != "pending" else None)
    admin = Actor(role="admin")
    if target == "confirmed":
        with pytest.raises(Forbidden):
            plan_transition(order, target, admin, NOW, policy=POLICY)
    elif target == "cancelled" and is_valid_transition(current, target):
        plan = plan_transition(order, target, admin, NOW, policy=POLICY)
        assert plan.to_status == "cancelled"
    elif not is_valid_transition(current, target):
        with pytest.raises(InvalidTransition):
            plan_transition(order, target, admin, NOW, policy=POLICY)
    else:
        # start/complete belong to the assigned driver
        with pytest.raises(Forbidden):
            plan_transition(order, target, admin, NOW, policy=POLICY)


def test_accept_assigns_driver_with_status():
    plan = plan_transition(make_order(), "confirmed", driver(1), NOW, DRIVER_A, POLICY)
    assert plan.from_status == "pending"
    assert plan.changes["status"] == "confirmed"
    assert plan.changes["driver_id"] == 1
    assert plan.changes["updated_at"] == NOW
    assert plan.require_unassigned


def test_accept_of_taken_order_is_not_assigned():
    with pytest.raises(NotAssigned):
        plan_transition(make_order("confirmed", driver_id=1), "confirmed", driver(2), NOW, DRIVER_B, POLICY)


def test_accept_requires_active_driver():
    with pytest.raises(Forbidden):
        plan_transition(make_order(), "confirmed", driver(1), NOW, {"id": 1, "status": "blocked"}, POLICY)
    with pytest.raises(Forbidden):
        plan_transition(make_order(), "confirmed", driver(1), NOW, {"id": 1, "status": "pending"}, POLICY)


def test_accept_requires_driver_record():
    with pytest.raises(Forbidden):
        plan_transition(make_order(), "confirmed", driver(1), NOW, None, POLICY)


def test_customer_cannot_accept():
    with pytest.raises(Forbidden):
        plan_transition(make_order(), "confirmed", Actor(role="customer", id="+79140000001"), NOW)


def test_only_assigned_driver_starts_and_completes():
    confirmed = make_order("confirmed", driver_id=1)
    plan = plan_transition(confirmed, "in_progress", driver(1), NOW, DRIVER_A, POLICY)
    assert plan.require_driver_id == 1

    with pytest.raises(NotAssigned):
        plan_transition(confirmed, "in_progress", driver(2), NOW, DRIVER_B, POLICY)

    in_progress = make_order("in_progress", driver_id=1)
    assert plan_transition(in_progress, "completed", driver(1), NOW, DRIVER_A, POLICY).to_status == "completed"
    with pytest.raises(Forbidden):
        plan_transition(in_progress, "completed", Actor(role="admin"), NOW, policy=POLICY)


def test_skipping_a_step_is_invalid():
    with pytest.raises(InvalidTransition):
        plan_transition(make_order("confirmed", driver_id=1), "completed", driver(1), NOW, DRIVER_A, POLICY)
    with pytest.raises(InvalidTransition):
        plan_transition(make_order("pending"), "in_progress", driver(1), NOW, DRIVER_A, POLICY)


def test_terminal_orders_cannot_be_cancelled():
    for status in ("completed", "cancelled", "in_progress"):
        with pytest.raises(InvalidTransition):
            plan_transition(make_order(status, driver_id=1), "cancelled", Actor(role="admin"), NOW, policy=POLICY)


def test_unknown_target_status():
    with pytest.raises(InvalidTransition):
        plan_transition(make_order(), "archived", Actor(role="admin"), NOW, policy=POLICY)


def test_customer_cancel_window():
    customer = Actor(role="customer", id="+79140000001")
    # Delivery at 16:00, now 10:00 -> 6 hours ahead
    plan = plan_transition(make_order(), "cancelled", customer, NOW, policy=POLICY)
    assert plan.to_status == "cancelled"

    # Exactly three hours ahead is still allowed
    assert can_cancel(make_order(delivery_time="13:00"), NOW, POLICY)

    # Two hours ahead is too late
    late = make_order("confirmed", driver_id=1, delivery_time="12:00")
    assert not can_cancel(late, NOW, POLICY)
    with pytest.raises(Forbidden):
        plan_transition(late, "cancelled", customer, NOW, policy=POLICY)


def test_customer_cannot_cancel_someone_elses_order():
    with pytest.raises(Forbidden):
        plan_transition(make_order(), "cancelled", Actor(role="customer", id="+79149999999"), NOW, policy=POLICY)


def test_driver_cancel_has_no_time_window():
    late = make_order("confirmed", driver_id=1, delivery_time="10:30")
    plan = plan_transition(late, "cancelled", driver(1), NOW, DRIVER_A, POLICY)
    assert plan.require_driver_id == 1


def test_driver_cannot_cancel_another_drivers_order():
    with pytest.raises(NotAssigned):
        plan_transition(make_order("confirmed", driver_id=1), "cancelled", driver(2), NOW, DRIVER_B, POLICY)


def test_driver_declines_unassigned_order():
    plan = plan_transition(make_order(), "cancelled", driver(2), NOW, DRIVER_B, POLICY)
    assert plan.require_unassigned


def test_admin_cancel_ignores_window():
    late = make_order("confirmed", driver_id=1, delivery_time="10:15")
    assert plan_transition(late, "cancelled", Actor(role="admin"), NOW, policy=POLICY).to_status == "cancelled"


def test_can_cancel_rejects_other_statuses():
    for status in ("in_progress", "completed", "cancelled"):
        assert not can_cancel(make_order(status), NOW, POLICY)


def test_unknown_role_rejected():
    with pytest.raises(Forbidden):
        Actor(role="dispatcher")
