from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Protocol

from app.shopcart.core.logging import log_json
from app.shopcart.core.metrics import metrics
from app.shopcart.db.models import CartEvent
from app.shopcart.repos.cart_events import CartEventRepository
from app.shopcart.services.line_item import LineItem

CART_ADDING = "cart.adding"
CART_ADDED = "cart.added"
CART_UPDATING = "cart.updating"
CART_UPDATED = "cart.updated"
CART_REMOVING = "cart.removing"
CART_REMOVED = "cart.removed"

logger = logging.getLogger("shopcart.events")


class EventSink(Protocol):
    def notify(self, event_name: str, payload: LineItem) -> None: ...


class NullEventSink:
    def notify(self, event_name: str, payload: LineItem) -> None:
        return None


class LoggingEventSink:
    def __init__(self, instance_key: str | None = None):
        self.instance_key = instance_key

    def notify(self, event_name: str, payload: LineItem) -> None:
        log_json(
            logger,
            {
                "event": "cart_event",
                "name": event_name,
                "instance_key": self.instance_key,
                "row_id": payload.row_id,
                "product_id": payload.product_id,
                "quantity": payload.quantity,
            },
        )
        metrics.increment_cart_event(event_name)


class DatabaseEventSink:
    """Appends every notification to ``cart_events``. Write failures propagate."""

    def __init__(self, db, instance_key: str):
        self.repo = CartEventRepository(db)
        self.instance_key = instance_key

    def notify(self, event_name: str, payload: LineItem) -> None:
        self.repo.create(
            CartEvent(
                instance_key=self.instance_key,
                event=event_name,
                row_id=payload.row_id,
                product_id=payload.product_id,
                quantity=payload.quantity,
                item_snapshot=payload.to_record(),
                created_at=datetime.utcnow(),
            )
        )


class EventDispatcher:
    def __init__(self, sinks: Iterable[EventSink] = ()):
        self._sinks = list(sinks)
        self._listeners: dict[str, list[Callable[[str, LineItem], None]]] = {}

    def add_sink(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def listen(self, event_name: str, callback: Callable[[str, LineItem], None]) -> None:
        self._listeners.setdefault(event_name, []).append(callback)

    def notify(self, event_name: str, payload: LineItem) -> None:
        # sinks and listeners receive a detached copy
        snapshot = copy.deepcopy(payload)
        for sink in self._sinks:
            sink.notify(event_name, snapshot)
        for callback in self._listeners.get(event_name, []):
            callback(event_name, snapshot)
