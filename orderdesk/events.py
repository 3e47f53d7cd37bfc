"""
Order change notifications over Redis pub/sub.

Every insert/update made through the order store is published as
{"type": "insert"|"update"|"delete", "table": "orders", "record": {...}}.
Publishing is best effort: the store stays authoritative and views that miss
a message reconcile on their next poll.
"""

import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .config import ORDER_CHANGES_CHANNEL
from .redis_client import get_async_redis_client, get_redis_client

logger = logging.getLogger(__name__)

CHANGE_TYPES = ("insert", "update", "delete")


@dataclass
class OrderChange:
    type: str
    record: dict = field(default_factory=dict)
    table: str = "orders"

    def to_json(self) -> str:
        return json.dumps({"type": self.type, "table": self.table, "record": self.record}, default=str)


def parse_change(raw: Any) -> Optional[OrderChange]:
    """Decode a pub/sub payload; malformed messages are dropped"""
    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        change_type = data["type"]
        if change_type not in CHANGE_TYPES:
            raise ValueError(f"unknown change type {change_type}")
        return OrderChange(
            type=change_type, record=data.get("record") or {}, table=data.get("table", "orders")
        )
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"⚠️ Ignoring malformed change message: {e}")
        return None


class OrderEvents:
    """Publishes order changes; failures are logged, never raised"""

    def __init__(self, channel: str = ORDER_CHANGES_CHANNEL, client=None):
        self.channel = channel
        self.client = client

    def _get_client(self):
        if self.client is None:
            try:
                self.client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Order change publishing unavailable: {e}")
                return None
        return self.client

    def publish(self, change_type: str, record: dict) -> bool:
        client = self._get_client()
        if not client:
            return False

        change = OrderChange(type=change_type, record=record)
        try:
            client.publish(self.channel, change.to_json())
            logger.debug(f"📣 Published {change_type} for order {record.get('id')}")
            return True
        except Exception as e:
            logger.warning(f"⚠️ Failed to publish {change_type} for order {record.get('id')}: {e}")
            return False


order_events = OrderEvents()


def get_order_events() -> OrderEvents:
    return order_events


async def subscribe(
    on_change: Callable[[OrderChange], Any],
    record_filter: Optional[Callable[[dict], bool]] = None,
    channel: str = ORDER_CHANGES_CHANNEL,
    client=None,
):
    """
    Deliver order changes to on_change until the calling task is cancelled.

    on_change may be a plain function or a coroutine function. Connection
    errors propagate so the caller can fall back to polling.
    """
    owns_client = client is None
    client = client or get_async_redis_client()
    try:
        pubsub = client.pubsub()
        await pubsub.subscribe(channel)
        logger.info(f"📡 Subscribed to {channel}")
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                change = parse_change(message.get("data"))
                if change is None:
                    continue
                if record_filter and not record_filter(change.record):
                    continue
                result = on_change(change)
                if inspect.isawaitable(result):
                    await result
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
    finally:
        # Only close a client created here
        if owns_client:
            await client.aclose()
