import asyncio
import json

import pytest

from orderdesk.cache import Cache, build_slots_key, invalidate_slots_cache, set_slots_cached
from orderdesk.events import OrderEvents, parse_change, subscribe

from .conftest import TOMORROW


class BrokenPublisher:
    def publish(self, channel, message):
        raise ConnectionError("redis down")


class FakePubSub:
    def __init__(self, messages):
        self.messages = messages
        self.closed = False

    async def subscribe(self, channel):
        self.channel = channel

    async def unsubscribe(self, channel):
        pass

    async def aclose(self):
        self.closed = True

    async def listen(self):
        for message in self.messages:
            yield message


class FakeAsyncRedis:
    def __init__(self, messages):
        self.pubsub_instance = FakePubSub(messages)
        self.closed = False

    async def aclose(self):
        self.closed = True

    def pubsub(self):
        return self.pubsub_instance


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def delete(self, key):
        self.store.pop(key, None)


def test_parse_change():
    change = parse_change(json.dumps({"type": "update", "record": {"id": 7}}))
    assert change.type == "update"
    assert change.record == {"id": 7}
    assert change.table == "orders"


def test_malformed_changes_are_dropped():
    assert parse_change("not json") is None
    assert parse_change(json.dumps({"record": {}})) is None
    assert parse_change(json.dumps({"type": "truncate"})) is None
    assert parse_change(None) is None


def test_publish_failure_is_not_raised():
    events = OrderEvents(client=BrokenPublisher())
    assert events.publish("insert", {"id": 1}) is False


def test_publish_records_change(publisher):
    events = OrderEvents(channel="orders:test", client=publisher)
    assert events.publish("insert", {"id": 1, "status": "pending"})
    assert publisher.messages == [
        ("orders:test", {"type": "insert", "table": "orders", "record": {"id": 1, "status": "pending"}})
    ]


def test_subscribe_filters_and_delivers():
    messages = [
        {"type": "subscribe", "data": 1},
        {"type": "message", "data": json.dumps({"type": "update", "record": {"id": 1, "driver_id": 5}})},
        {"type": "message", "data": "garbage"},
        {"type": "message", "data": json.dumps({"type": "insert", "record": {"id": 2, "driver_id": None}})},
        {"type": "message", "data": json.dumps({"type": "update", "record": {"id": 3, "driver_id": 9}})},
    ]
    client = FakeAsyncRedis(messages)
    received = []

    async def on_change(change):
        received.append(change.record["id"])

    asyncio.run(
        subscribe(on_change, lambda record: record.get("driver_id") in (None, 5), client=client)
    )
    assert received == [1, 2]
    assert client.pubsub_instance.closed
    # Callers keep ownership of the client they pass in
    assert not client.closed


def test_slot_cache_round_trip_and_invalidation():
    cache = Cache(enabled=True, client=FakeRedis())
    set_slots_cached(cache, TOMORROW, ["08:00", "08:30"])
    assert cache.get(build_slots_key(TOMORROW)) == ["08:00", "08:30"]

    invalidate_slots_cache(cache, TOMORROW)
    assert cache.get(build_slots_key(TOMORROW)) is None


def test_disabled_cache_is_a_no_op():
    cache = Cache(enabled=False)
    assert cache.set("slots:2025-06-01", ["08:00"]) is False
    assert cache.get("slots:2025-06-01") is None


def test_subscribe_closes_the_client_it_creates(monkeypatch):
    client = FakeAsyncRedis([{"type": "message", "data": json.dumps({"type": "insert", "record": {"id": 1}})}])
    monkeypatch.setattr("orderdesk.events.get_async_redis_client", lambda: client)

    asyncio.run(subscribe(lambda change: None))
    assert client.pubsub_instance.closed
    assert client.closed


def test_failed_subscription_still_releases_the_client(monkeypatch):
    client = FakeAsyncRedis([])

    async def refuse(channel):
        raise ConnectionError("redis down")

    client.pubsub_instance.subscribe = refuse
    monkeypatch.setattr("orderdesk.events.get_async_redis_client", lambda: client)

    with pytest.raises(ConnectionError):
        asyncio.run(subscribe(lambda change: None))
    assert client.closed
