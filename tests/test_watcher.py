import asyncio
import time

from orderdesk.events import OrderChange
from orderdesk.watcher import OrderWatcher


def test_falls_back_to_polling_when_subscription_fails():
    loads = []

    def load_orders():
        loads.append(1)
        return [{"id": len(loads)}]

    async def broken_subscribe(on_change, record_filter):
        raise ConnectionError("redis down")

    async def scenario():
        watcher = OrderWatcher(load_orders, poll_interval=0.01, subscribe_fn=broken_subscribe)
        watcher.start()
        await asyncio.sleep(0.1)
        assert watcher.polling
        assert watcher.running
        assert watcher.orders[0]["id"] >= 2
        await watcher.stop()
        assert not watcher.running
        return watcher

    asyncio.run(scenario())
    assert len(loads) >= 2


def test_reloads_on_change_notification():
    snapshots = []
    version = {"n": 0}

    def load_orders():
        version["n"] += 1
        return [{"id": 1, "version": version["n"]}]

    async def one_change(on_change, record_filter):
        await on_change(OrderChange(type="update", record={"id": 1}))
        await asyncio.Event().wait()

    async def scenario():
        watcher = OrderWatcher(
            load_orders,
            on_refresh=snapshots.append,
            poll_interval=60,
            subscribe_fn=one_change,
        )
        watcher.start()
        await asyncio.sleep(0.05)
        assert not watcher.polling
        await watcher.stop()
        return watcher

    watcher = asyncio.run(scenario())
    assert [s[0]["version"] for s in snapshots] == [1, 2]
    assert watcher.orders == [{"id": 1, "version": 2}]


def test_slow_store_does_not_break_the_loop():
    def slow_load():
        time.sleep(0.2)
        return []

    async def scenario():
        watcher = OrderWatcher(slow_load, timeout=0.01, subscribe_fn=None)
        # A timeout surfaces as a transient error and leaves the snapshot alone
        watcher.orders = [{"id": 1}]
        await watcher._safe_refresh()
        return watcher

    watcher = asyncio.run(scenario())
    assert watcher.orders == [{"id": 1}]


def test_subscription_is_restored_after_an_outage():
    attempts = []
    received = []

    async def flaky_subscribe(on_change, record_filter):
        attempts.append(1)
        if len(attempts) == 1:
            raise ConnectionError("redis down")
        await on_change(OrderChange(type="insert", record={"id": 2}))
        received.append(2)
        await asyncio.Event().wait()

    async def scenario():
        watcher = OrderWatcher(
            lambda: [],
            poll_interval=0.01,
            subscribe_fn=flaky_subscribe,
            resubscribe_every=3,
        )
        watcher.start()
        await asyncio.sleep(0.2)
        assert watcher.subscribe_attempts == 2
        assert not watcher.polling
        await watcher.stop()

    asyncio.run(scenario())
    assert received == [2]
