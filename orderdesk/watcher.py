"""
Order watcher - the single background update path for one role view.

The watcher keeps a view's local order snapshot in step with the store: it
loads once, then reloads whenever a change notification arrives. If the
subscription cannot be established (or drops), it falls back to polling and
tries to subscribe again every few polls.
The snapshot is a disposable cache; every reload replaces it wholesale.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

from .config import POLL_INTERVAL_SECONDS, RESUBSCRIBE_EVERY_POLLS, STORE_TIMEOUT_SECONDS
from .errors import TransientStoreError
from .events import OrderChange, subscribe

logger = logging.getLogger(__name__)


class OrderWatcher:
    def __init__(
        self,
        load_orders: Callable[[], list],
        on_refresh: Optional[Callable[[list], Any]] = None,
        record_filter: Optional[Callable[[dict], bool]] = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        timeout: float = STORE_TIMEOUT_SECONDS,
        subscribe_fn=subscribe,
        resubscribe_every: int = RESUBSCRIBE_EVERY_POLLS,
    ):
        """
        Args:
            load_orders: blocking call returning the current order list
            on_refresh: called (or awaited) with each fresh snapshot
            record_filter: only changes whose record passes trigger a reload
            subscribe_fn: change subscription; errors switch to polling
            resubscribe_every: polls between subscription attempts
        """
        self.load_orders = load_orders
        self.on_refresh = on_refresh
        self.record_filter = record_filter
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.subscribe_fn = subscribe_fn
        self.resubscribe_every = max(1, resubscribe_every)
        self.subscribe_attempts = 0
        self.orders: list = []
        self.polling = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self) -> None:
        """Tear down on logout/navigation"""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("👋 Order watcher stopped")

    async def refresh(self) -> list:
        """Reload the snapshot from the store, bounded by the store timeout"""
        try:
            orders = await asyncio.wait_for(asyncio.to_thread(self.load_orders), self.timeout)
        except asyncio.TimeoutError as e:
            raise TransientStoreError("Timed out loading orders") from e

        self.orders = list(orders)
        if self.on_refresh is not None:
            result = self.on_refresh(self.orders)
            if inspect.isawaitable(result):
                await result
        return self.orders

    async def _safe_refresh(self) -> None:
        try:
            await self.refresh()
        except TransientStoreError as e:
            logger.warning(f"⚠️ Order refresh failed, will retry: {e}")
        except Exception as e:
            logger.error(f"❌ Unexpected error refreshing orders: {e}")

    async def _on_change(self, change: OrderChange) -> None:
        logger.debug(f"🔔 Order {change.type}: #{change.record.get('id')}")
        await self._safe_refresh()

    async def _listen(self) -> None:
        """Stay subscribed until the subscription ends or fails"""
        self.subscribe_attempts += 1
        self.polling = False
        try:
            await self.subscribe_fn(self._on_change, self.record_filter)
            logger.warning("⚠️ Order subscription ended, switching to polling")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"⚠️ Order subscription unavailable, polling every {self.poll_interval}s: {e}")
        self.polling = True

    async def _run(self) -> None:
        await self._safe_refresh()

        while True:
            await self._listen()
            for _ in range(self.resubscribe_every):
                await asyncio.sleep(self.poll_interval)
                await self._safe_refresh()
            logger.info("🔄 Retrying order subscription")
