from datetime import date

import pytest

from orderdesk.domain.orders.booking import BookingCoordinator, CustomerInfo
from orderdesk.domain.orders.repository import OrderRepository
from orderdesk.domain.scheduling.availability_service import AvailabilityService
from orderdesk.domain.scheduling.slots import SlotGrid, SlotAvailability, AVAILABLE
from orderdesk.errors import SlotTaken, ValidationError

from .conftest import TOMORROW

CUSTOMER = CustomerInfo(name="Ivan", phone="+79140000001")


@pytest.fixture
def coordinator(db, clock, cache, events):
    return BookingCoordinator(db, clock, cache, events)


def book(coordinator, delivery_time="14:00", service_type="septic", quantity=1, delivery_date=TOMORROW):
    return coordinator.submit_booking(
        delivery_date=delivery_date,
        delivery_time=delivery_time,
        service_type=service_type,
        quantity=quantity,
        customer=CUSTOMER,
        address="ul. Lenina 1",
    )


def test_booking_creates_pending_order(coordinator, publisher):
    order = book(coordinator)
    assert order.status == "pending"
    assert order.driver_id is None
    assert order.price == 4000
    assert order.delivery_time == "14:00"
    assert order.user_phone == "+79140000001"

    channel, message = publisher.messages[-1]
    assert channel == "orders:changes"
    assert message["type"] == "insert"
    assert message["record"]["id"] == order.id


def test_booked_slot_disappears(coordinator, db, cache):
    book(coordinator)
    availability = AvailabilityService(db, cache).get_available_slots(TOMORROW)
    assert "14:00" not in availability.slots
    assert len(availability.slots) == 24


def test_second_booking_of_same_slot_is_rejected(coordinator):
    book(coordinator)
    with pytest.raises(SlotTaken) as exc_info:
        book(coordinator, service_type="water", quantity=2)
    details = exc_info.value.details
    assert "14:00" not in details["available_slots"]
    assert details["fully_booked"] is False


def test_stale_slot_list_still_cannot_double_book(coordinator, db, monkeypatch):
    book(coordinator)

    # Both the cached list and the re-check missed the competing booking
    stale = SlotAvailability(TOMORROW, SlotGrid().candidates(), AVAILABLE)
    monkeypatch.setattr(
        AvailabilityService, "get_available_slots", lambda self, d, use_cache=True: stale
    )
    monkeypatch.setattr(OrderRepository, "find_active_at", staticmethod(lambda *args: None))

    with pytest.raises(SlotTaken):
        book(coordinator)

    orders = OrderRepository.active_orders_on(db, TOMORROW)
    assert [o.delivery_time for o in orders] == ["14:00"]


def test_cancelled_order_frees_the_slot(coordinator, make_order):
    make_order(delivery_time="14:00", status="cancelled")
    make_order(delivery_time="15:00", status="completed")
    assert book(coordinator, "14:00").status == "pending"
    assert book(coordinator, "15:00").status == "pending"


def test_water_price_scales_with_quantity(coordinator):
    assert book(coordinator, service_type="water", quantity=3).price == 3900


def test_septic_quantity_is_forced_to_one(coordinator):
    order = book(coordinator, quantity=4)
    assert order.quantity == 1
    assert order.price == 4000


def test_stored_time_is_normalized(coordinator):
    assert book(coordinator, "09:30:00").delivery_time == "09:30"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"delivery_time": "14:15"},
        {"delivery_time": "21:00"},
        {"delivery_time": None},
        {"delivery_date": None},
        {"delivery_date": "01.06.2025"},
        {"delivery_date": date(2025, 5, 31)},
        {"service_type": "gas"},
        {"service_type": "water", "quantity": 0},
    ],
)
def test_invalid_bookings_never_reach_the_store(coordinator, db, publisher, kwargs):
    with pytest.raises(ValidationError):
        book(coordinator, **kwargs)
    assert OrderRepository.query_orders(db) == []
    assert publisher.messages == []


def test_missing_address(coordinator):
    with pytest.raises(ValidationError):
        coordinator.submit_booking(TOMORROW, "14:00", "septic", 1, CUSTOMER, address="  ")


def test_fully_booked_day(coordinator, db, cache):
    for slot in SlotGrid().candidates():
        book(coordinator, slot)

    availability = AvailabilityService(db, cache).get_available_slots(TOMORROW)
    assert availability.fully_booked

    with pytest.raises(SlotTaken) as exc_info:
        book(coordinator, "12:00")
    assert exc_info.value.details == {"available_slots": [], "fully_booked": True}
