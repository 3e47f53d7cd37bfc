import json
import os
from datetime import date, datetime, timedelta

# Must be set before orderdesk modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from orderdesk.cache import Cache  # noqa: E402
from orderdesk.constants import DRIVER_ACTIVE, PENDING  # noqa: E402
from orderdesk.database import Base, build_engine  # noqa: E402
from orderdesk.events import OrderEvents  # noqa: E402
from orderdesk.models import Driver, Order  # noqa: E402

TOMORROW = date(2025, 6, 1)


class FrozenClock:
    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingPublisher:
    """Stands in for the Redis client; keeps every published message"""

    def __init__(self):
        self.messages = []

    def publish(self, channel, message):
        self.messages.append((channel, json.loads(message)))
        return 1


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'orders.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 5, 31, 10, 0))


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def events(publisher):
    return OrderEvents(channel="orders:changes", client=publisher)


@pytest.fixture
def cache():
    return Cache(enabled=False)


@pytest.fixture
def make_driver(session_factory):
    counter = {"n": 0}

    def _make(status=DRIVER_ACTIVE, service_type="water", phone=None):
        counter["n"] += 1
        session = session_factory()
        try:
            driver = Driver(
                full_name=f"Driver {counter['n']}",
                phone=phone or f"+7914000000{counter['n']}",
                service_type=service_type,
                car_number=f"A{counter['n']:03d}AA",
                status=status,
            )
            session.add(driver)
            session.commit()
            return driver.id
        finally:
            session.close()

    return _make


@pytest.fixture
def make_order(session_factory):
    def _make(
        delivery_time="14:00",
        delivery_date=TOMORROW,
        status=PENDING,
        driver_id=None,
        price=4000,
        service_type="septic",
        user_phone="+79140000001",
    ):
        session = session_factory()
        try:
            order = Order(
                service_type=service_type,
                quantity=1,
                address="ul. Lenina 1",
                delivery_date=delivery_date,
                delivery_time=delivery_time,
                price=price,
                status=status,
                driver_id=driver_id,
                user_name="Ivan",
                user_phone=user_phone,
                created_at=datetime(2025, 5, 30, 12, 0),
                updated_at=datetime(2025, 5, 30, 12, 0),
            )
            session.add(order)
            session.commit()
            return order.id
        finally:
            session.close()

    return _make


@pytest.fixture
def client(session_factory, clock, cache, events):
    from fastapi.testclient import TestClient

    from orderdesk.cache import get_cache
    from orderdesk.clock import get_clock
    from orderdesk.database import get_db
    from orderdesk.events import get_order_events
    from orderdesk.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_order_events] = lambda: events
    yield TestClient(app)
    app.dependency_overrides.clear()
